import pytest
from datetime import datetime, timedelta
from app.database import DatabaseManager, get_db
from app.models import Booking, EventType, Member, Team, TimeSlotPreset
from app.models.booking import BookingStatus
from app.models.event_type import ParticipationMode, TimeRestrictionType
from app.models.member import MemberRole
from app.services.booking_service import BookingService
from app.services.event_type_service import EventTypeService, generate_slug
from app.services.preset_service import PresetService
from app.services.rate_limiter import RateLimiter


@pytest.fixture
def event_type_service(db):
    return EventTypeService()


@pytest.fixture
def preset_service(event_type_service):
    return PresetService(event_type_service)


@pytest.fixture
def outsider(team_data):
    """Admin of a different team"""
    with get_db() as session:
        team = Team(name='Support', invite_code='efgh5678')
        session.add(team)
        session.flush()
        member = Member(email='outsider@example.com', name='Outsider', team_id=team.id, role=MemberRole.ADMIN)
        session.add(member)
        session.flush()
        return member.id


def add_booking(event_type_id, start, status=BookingStatus.CONFIRMED):
    return DatabaseManager(Booking).create(
        event_type_id=event_type_id,
        start_at=start,
        end_at=start + timedelta(minutes=30),
        requester_name='Guest',
        requester_email='guest@example.com',
        note='相談',
        status=status,
    )


class TestEventTypeManagement:
    """Test event type create, update and delete"""

    def test_create_event_type(self, event_type_service, team_data):
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Product Demo',
            'durationMinutes': '45',
            'memberIds': [team_data['organizer_id']],
            'participationMode': 'any_available',
        })

        assert result['title'] == 'Product Demo'
        assert result['durationMinutes'] == 45
        assert result['organizerId'] == team_data['member_id']
        assert result['teamId'] == team_data['team_id']
        assert result['slug'].startswith('product-demo-')
        assert result['calendarTitleTemplate'] == '{メニュー名} - {予約者名}'
        assert result['timeRestrictionType'] == 'none'

        event_type = DatabaseManager(EventType).get(result['id'])
        assert event_type.participation_mode == ParticipationMode.ANY_AVAILABLE
        assert [m.id for m in event_type.members] == [team_data['organizer_id']]

    def test_duration_must_be_allowed(self, event_type_service, team_data):
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Odd', 'durationMinutes': 25,
        })
        assert result['error_type'] == 'validation'
        assert result['details'][0]['field'] == 'durationMinutes'

    def test_members_must_belong_to_team(self, event_type_service, team_data, outsider):
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Mixed', 'durationMinutes': 30, 'memberIds': [outsider],
        })
        assert result['error_type'] == 'validation'
        assert result['details'][0]['field'] == 'memberIds'

    def test_custom_restriction(self, event_type_service, team_data):
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Mornings',
            'durationMinutes': 60,
            'timeRestrictionType': 'custom',
            'timeRestrictionCustom': {'days': [2, 1, 2], 'start_time': '09:00', 'end_time': '12:00'},
        })
        assert result['timeRestrictionCustom'] == {'days': [1, 2], 'start_time': '09:00', 'end_time': '12:00'}

        resolved = event_type_service.resolve(result['id'])
        assert resolved.restriction.days == (1, 2)

    def test_custom_restriction_requires_window(self, event_type_service, team_data):
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Broken', 'durationMinutes': 60, 'timeRestrictionType': 'custom',
        })
        assert result['error_type'] == 'validation'

        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Inverted', 'durationMinutes': 60, 'timeRestrictionType': 'custom',
            'timeRestrictionCustom': {'days': [1], 'start_time': '12:00', 'end_time': '09:00'},
        })
        assert result['details'][0]['field'] == 'timeRestrictionCustom.end_time'

    def test_preset_restriction_requires_team_preset(self, event_type_service, preset_service,
                                                     team_data, outsider):
        foreign = DatabaseManager(TimeSlotPreset).create(
            team_id=DatabaseManager(Member).get(outsider).team_id,
            name='Theirs', days=[1], start_time='09:00', end_time='10:00',
        )
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Preset', 'durationMinutes': 30,
            'timeRestrictionType': 'preset', 'timeRestrictionPresetId': foreign.id,
        })
        assert result['error_type'] == 'validation'

        own = preset_service.create_preset(team_data['organizer_id'], {
            'name': 'Ours', 'days': [3], 'start_time': '13:00', 'end_time': '15:00',
        })
        result = event_type_service.create_event_type(team_data['member_id'], {
            'title': 'Preset', 'durationMinutes': 30,
            'timeRestrictionType': 'preset', 'timeRestrictionPresetId': own['id'],
        })
        assert result['timeRestrictionPresetId'] == own['id']

    def test_update_by_admin(self, event_type_service, team_data):
        result = event_type_service.update_event_type(team_data['organizer_id'], team_data['event_type_id'], {
            'title': 'Discovery call',
            'isActive': False,
            'memberIds': [team_data['member_id'], team_data['note_taker_id']],
        })

        assert result['title'] == 'Discovery call'
        assert result['isActive'] is False
        assert result['durationMinutes'] == 30
        members = event_type_service.get_member_ids(team_data['organizer_id'], team_data['event_type_id'])
        assert set(members['memberIds']) == {team_data['member_id'], team_data['note_taker_id']}

    def test_update_requires_owner_or_admin(self, event_type_service, team_data):
        result = event_type_service.update_event_type(team_data['member_id'], team_data['event_type_id'], {
            'title': 'Mine now',
        })
        assert result['error_type'] == 'forbidden'
        assert DatabaseManager(EventType).get(team_data['event_type_id']).title == 'Intro call'

    def test_other_team_cannot_see_event_type(self, event_type_service, team_data, outsider):
        result = event_type_service.update_event_type(outsider, team_data['event_type_id'], {'title': 'x'})
        assert result['error_type'] == 'not_found'
        assert event_type_service.list_event_types(outsider) == {'eventTypes': []}

    def test_partial_update_keeps_restriction_consistent(self, event_type_service, team_data):
        result = event_type_service.update_event_type(team_data['organizer_id'], team_data['event_type_id'], {
            'timeRestrictionType': 'preset',
        })
        assert result['error_type'] == 'validation'
        event_type = DatabaseManager(EventType).get(team_data['event_type_id'])
        assert event_type.time_restriction_type == TimeRestrictionType.NONE

    def test_delete_removes_bookings(self, event_type_service, team_data):
        add_booking(team_data['event_type_id'], datetime(2030, 1, 7, 1, 0))
        add_booking(team_data['event_type_id'], datetime(2030, 1, 8, 1, 0), BookingStatus.CANCELED)
        assert DatabaseManager(Booking).count(event_type_id=team_data['event_type_id']) == 2

        result = event_type_service.delete_event_type(team_data['organizer_id'], team_data['event_type_id'])

        assert result == {'success': True}
        assert DatabaseManager(EventType).get(team_data['event_type_id']) is None
        assert DatabaseManager(Booking).count(event_type_id=team_data['event_type_id']) == 0
        assert DatabaseManager(Member).get(team_data['member_id']) is not None

    def test_delete_requires_owner_or_admin(self, event_type_service, team_data):
        result = event_type_service.delete_event_type(team_data['member_id'], team_data['event_type_id'])
        assert result['error_type'] == 'forbidden'
        assert DatabaseManager(EventType).get(team_data['event_type_id']) is not None

    def test_public_lookup(self, event_type_service, team_data):
        assert event_type_service.get_public_event_type(slug='intro')['id'] == team_data['event_type_id']
        assert event_type_service.get_public_event_type(event_type_id='nope')['error_type'] == 'not_found'

        DatabaseManager(EventType).update(team_data['event_type_id'], is_active=False)
        assert event_type_service.get_public_event_type(slug='intro')['error_type'] == 'not_found'

    def test_member_without_team(self, event_type_service, db):
        member = DatabaseManager(Member).create(email='solo@example.com', name='Solo')
        assert event_type_service.list_event_types(member.id)['error_type'] == 'forbidden'

    def test_generate_slug(self):
        assert generate_slug('Intro Call!').startswith('intro-call-')
        assert generate_slug('初回相談').startswith('event-')


class TestPresetService:
    """Test team-scoped time slot presets"""

    def test_create_and_list(self, preset_service, team_data):
        created = preset_service.create_preset(team_data['organizer_id'], {
            'name': '午前', 'days': [5, 1, 1], 'start_time': '09:00', 'end_time': '12:00', 'color': '#00f',
        })
        assert created['days'] == [1, 5]

        presets = preset_service.list_presets(team_data['member_id'])['presets']
        assert [preset['name'] for preset in presets] == ['午前']

    def test_invalid_preset(self, preset_service, team_data):
        result = preset_service.create_preset(team_data['organizer_id'], {
            'name': '', 'days': [7], 'start_time': '9:00', 'end_time': '12:00',
        })
        assert result['error_type'] == 'validation'

    def test_update_checks_merged_window(self, preset_service, team_data):
        created = preset_service.create_preset(team_data['organizer_id'], {
            'name': '午前', 'days': [1], 'start_time': '09:00', 'end_time': '12:00',
        })

        result = preset_service.update_preset(team_data['organizer_id'], created['id'], {'start_time': '13:00'})
        assert result['error_type'] == 'validation'

        result = preset_service.update_preset(team_data['organizer_id'], created['id'], {'end_time': '13:00'})
        assert result['endTime'] == '13:00'

    def test_delete_clears_event_type_reference(self, preset_service, event_type_service, team_data):
        created = preset_service.create_preset(team_data['organizer_id'], {
            'name': '午前', 'days': [1], 'start_time': '09:00', 'end_time': '12:00',
        })
        event_type_service.update_event_type(team_data['organizer_id'], team_data['event_type_id'], {
            'timeRestrictionType': 'preset', 'timeRestrictionPresetId': created['id'],
        })

        assert preset_service.delete_preset(team_data['organizer_id'], created['id']) == {'success': True}

        event_type = DatabaseManager(EventType).get(team_data['event_type_id'])
        assert event_type.time_restriction_preset_id is None
        assert event_type_service.resolve(team_data['event_type_id']).restriction is None

    def test_other_team_preset_not_found(self, preset_service, team_data, outsider):
        created = preset_service.create_preset(team_data['organizer_id'], {
            'name': '午前', 'days': [1], 'start_time': '09:00', 'end_time': '12:00',
        })
        assert preset_service.delete_preset(outsider, created['id'])['error_type'] == 'not_found'


class TestListBookings:
    """Test the team booking list"""

    @pytest.fixture
    def booking_service(self, team_data, event_type_service):
        return BookingService(
            RateLimiter(usage_provider=lambda: 0, monthly_limit=1000),
            event_type_service=event_type_service,
            clock=lambda: datetime(2030, 1, 1, 0, 0),
        )

    def test_filters(self, booking_service, team_data, outsider):
        past = add_booking(team_data['event_type_id'], datetime(2029, 12, 1, 1, 0))
        later = add_booking(team_data['event_type_id'], datetime(2030, 1, 9, 1, 0))
        sooner = add_booking(team_data['event_type_id'], datetime(2030, 1, 8, 1, 0), BookingStatus.CANCELED)

        result = booking_service.list_bookings(team_data['member_id'])
        assert [b['id'] for b in result['bookings']] == [past.id, sooner.id, later.id]
        assert result['bookings'][0]['eventType']['slug'] == 'intro'
        assert 'cancelTokenHash' not in result['bookings'][0]

        upcoming = booking_service.list_bookings(team_data['member_id'], upcoming=True)
        assert [b['id'] for b in upcoming['bookings']] == [sooner.id, later.id]

        confirmed = booking_service.list_bookings(team_data['member_id'], status='confirmed', upcoming=True)
        assert [b['id'] for b in confirmed['bookings']] == [later.id]

        assert booking_service.list_bookings(outsider) == {'bookings': []}

    def test_invalid_status(self, booking_service, team_data):
        result = booking_service.list_bookings(team_data['member_id'], status='pending')
        assert result['error_type'] == 'validation'
