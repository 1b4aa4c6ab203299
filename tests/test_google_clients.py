from datetime import datetime
from unittest.mock import MagicMock, patch
import requests
from app.integrations import GoogleCalendarClient, GoogleChatClient
from app.utils.timeutils import JST


def calendar_service_mock(list_pages=(), inserted=None):
    """Stand-in for the discovery-built Calendar service"""
    service = MagicMock()
    service.events.return_value.list.return_value.execute.side_effect = list(list_pages)
    service.events.return_value.insert.return_value.execute.return_value = inserted or {}
    return service


class TestGoogleCalendarClient:
    """Test event parsing and creation against a mocked API"""

    def test_busy_slots_skip_free_events(self):
        pages = [
            {'items': [
                {'start': {'dateTime': '2026-03-03T10:00:00+09:00'},
                 'end': {'dateTime': '2026-03-03T11:00:00+09:00'}},
                {'status': 'cancelled',
                 'start': {'dateTime': '2026-03-03T12:00:00+09:00'},
                 'end': {'dateTime': '2026-03-03T13:00:00+09:00'}},
                {'attendees': [{'self': True, 'responseStatus': 'declined'}],
                 'start': {'dateTime': '2026-03-03T14:00:00+09:00'},
                 'end': {'dateTime': '2026-03-03T15:00:00+09:00'}},
             ], 'nextPageToken': 'next'},
            {'items': [
                {'start': {'date': '2026-03-04'}, 'end': {'date': '2026-03-05'}},
                {'attendees': [{'self': True, 'responseStatus': 'needsAction'}],
                 'start': {'dateTime': '2026-03-04T09:00:00+09:00'},
                 'end': {'dateTime': '2026-03-04T09:30:00+09:00'}},
            ]},
        ]
        service = calendar_service_mock(list_pages=pages)

        with patch('app.integrations.google_calendar_client.build', return_value=service):
            slots = GoogleCalendarClient('id', 'secret').get_busy_slots(
                'token', 'primary', datetime(2026, 3, 3, tzinfo=JST), datetime(2026, 3, 5, tzinfo=JST)
            )

        assert [(s.start, s.end) for s in slots] == [
            (datetime(2026, 3, 3, 10, tzinfo=JST), datetime(2026, 3, 3, 11, tzinfo=JST)),
            (datetime(2026, 3, 4, 9, tzinfo=JST), datetime(2026, 3, 4, 9, 30, tzinfo=JST)),
        ]
        assert service.events.return_value.list.call_args.kwargs['pageToken'] == 'next'

    def test_create_event_with_meet_link(self):
        service = calendar_service_mock(inserted={
            'id': 'evt1',
            'conferenceData': {'entryPoints': [
                {'entryPointType': 'phone', 'uri': 'tel:+81-3-0000-0000'},
                {'entryPointType': 'video', 'uri': 'https://meet.google.com/xyz'},
            ]},
        })

        with patch('app.integrations.google_calendar_client.build', return_value=service):
            event = GoogleCalendarClient('id', 'secret').create_event(
                'token', 'Intro call', datetime(2026, 3, 3, 10, tzinfo=JST),
                datetime(2026, 3, 3, 10, 30, tzinfo=JST), ['a@example.com'], 'org@example.com',
                add_meet_link=True,
            )

        assert event.event_id == 'evt1'
        assert event.meet_link == 'https://meet.google.com/xyz'
        params = service.events.return_value.insert.call_args.kwargs
        assert params['conferenceDataVersion'] == 1
        assert params['sendUpdates'] == 'all'
        assert params['body']['start']['timeZone'] == 'Asia/Tokyo'
        assert params['body']['attendees'] == [{'email': 'a@example.com'}]

    def test_create_event_without_conference(self):
        service = calendar_service_mock(inserted={'id': 'evt2'})

        with patch('app.integrations.google_calendar_client.build', return_value=service):
            event = GoogleCalendarClient('id', 'secret').create_event(
                'token', 'Intro call', datetime(2026, 3, 3, 10, tzinfo=JST),
                datetime(2026, 3, 3, 10, 30, tzinfo=JST), ['guest@example.com'], 'org@example.com',
            )

        assert event.meet_link is None
        params = service.events.return_value.insert.call_args.kwargs
        assert 'conferenceDataVersion' not in params
        assert 'conferenceData' not in params['body']


class TestGoogleChatClient:
    """Test webhook posting"""

    def test_not_configured(self):
        client = GoogleChatClient()
        client.webhook_url = None
        assert client.send_card('t', 's', []) is False

    @patch('app.integrations.google_chat_client.requests.post')
    def test_send_card(self, mock_post):
        mock_post.return_value.raise_for_status.return_value = None

        sent = GoogleChatClient(webhook_url='https://chat.example.com/hook').send_card(
            'Title', 'Sub', [{'label': 'Total', 'value': '10'}], footer='footer'
        )

        assert sent is True
        card = mock_post.call_args.kwargs['json']['cards'][0]
        assert card['header'] == {'title': 'Title', 'subtitle': 'Sub'}
        assert card['sections'][0]['widgets'][0] == {'keyValue': {'topLabel': 'Total', 'content': '10'}}

    @patch('app.integrations.google_chat_client.requests.post')
    def test_send_failure(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        assert GoogleChatClient(webhook_url='https://chat.example.com/hook').send_message({}) is False
