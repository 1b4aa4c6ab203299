import os

# Must be set before config.config is imported
os.environ.setdefault('DATABASE_URL', 'sqlite:///test_meetflow.db')
os.environ.setdefault('ENCRYPTION_KEY', 'y4Yl0bLHsMZ1pqE8vZbC9oJ1r3hQ5Ty6u2N0aW7xKdo=')
os.environ.setdefault('LOG_FILE', '')

from unittest.mock import Mock

import pytest

from app.database import drop_db, get_db, init_db
from app.integrations import CreatedEvent
from app.models import EventType, Member, Team
from app.models.member import MemberRole


@pytest.fixture
def db():
    """Fresh schema for each test"""
    init_db()
    yield
    drop_db()


@pytest.fixture
def calendar_client():
    """Google Calendar client double: no busy time, events created successfully"""
    client = Mock()
    client.refresh_access_token.return_value = 'access-token'
    client.get_busy_slots.return_value = []
    client.create_event.side_effect = [
        CreatedEvent('internal-event', 'https://meet.google.com/abc-defg-hij'),
        CreatedEvent('guest-event'),
    ]
    return client


@pytest.fixture
def team_data(db):
    """Team with an organizer, one assigned member, a note-taker and an event type"""
    with get_db() as session:
        team = Team(name='Sales', invite_code='abcd1234')
        session.add(team)
        session.flush()

        organizer = Member(email='organizer@example.com', name='Organizer', role=MemberRole.ADMIN,
                           team_id=team.id, google_refresh_token='enc-organizer')
        member = Member(email='member@example.com', name='Member', team_id=team.id,
                        google_refresh_token='enc-member')
        note_taker = Member(email='notes@example.com', name='Notes', team_id=team.id,
                            google_refresh_token='enc-notes', is_note_taker=True)
        session.add_all([organizer, member, note_taker])
        session.flush()

        event_type = EventType(slug='intro', title='Intro call', duration_minutes=30,
                               organizer_id=organizer.id, team_id=team.id,
                               include_note_takers=True)
        event_type.members = [member]
        session.add(event_type)
        session.flush()

        data = {
            'team_id': team.id,
            'organizer_id': organizer.id,
            'member_id': member.id,
            'note_taker_id': note_taker.id,
            'event_type_id': event_type.id,
        }
    return data
