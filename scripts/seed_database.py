#!/usr/bin/env python3
"""
Script to seed the database with a sample team, members and event types
Set SEED_GOOGLE_REFRESH_TOKEN (and ENCRYPTION_KEY) to give members calendar access.
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import secrets
from app.database import init_db, drop_db, get_db
from app.models import Team, Member, TimeSlotPreset, EventType, SystemSetting
from app.models.member import MemberRole
from app.models.event_type import ParticipationMode, TimeRestrictionType
from app.models.system_setting import MAINTENANCE_MODE_KEY
from app.services.availability_calculator import DEFAULT_AVAILABILITY
from app.utils.security import encrypt_secret, generate_token


def encrypted_refresh_token():
    """Encrypted seed refresh token, or None when not provided"""
    token = os.environ.get('SEED_GOOGLE_REFRESH_TOKEN')
    if not token:
        return None
    return encrypt_secret(token)


def create_team(db):
    team = Team(name='Sales Team', invite_code=secrets.token_hex(4))
    db.add(team)
    db.flush()
    return team


def create_members(db, team):
    refresh_token = encrypted_refresh_token()

    admin = Member(
        email='admin@meetflow.example.com',
        name='Admin',
        role=MemberRole.ADMIN,
        team_id=team.id,
        google_refresh_token=refresh_token,
        availability_settings=DEFAULT_AVAILABILITY.to_dict(),
    )
    db.add(admin)

    members = [admin]
    for i in range(3):
        member = Member(
            email=f'member{i+1}@meetflow.example.com',
            name=f'Member {i+1}',
            team_id=team.id,
            google_refresh_token=refresh_token,
            is_note_taker=(i == 2),
        )
        db.add(member)
        members.append(member)

    db.flush()
    return members


def create_event_types(db, team, members):
    admin = members[0]

    preset = TimeSlotPreset(
        team_id=team.id,
        name='Weekday mornings',
        days=[1, 2, 3, 4, 5],
        start_time='09:00',
        end_time='12:00',
    )
    db.add(preset)
    db.flush()

    intro = EventType(
        slug='intro-call',
        title='Intro call',
        description='A short introduction to our services',
        duration_minutes=30,
        organizer_id=admin.id,
        team_id=team.id,
        include_note_takers=True,
        calendar_title_template='{メニュー名} - {予約者名} ({備考})',
    )
    intro.members = members[1:2]

    demo = EventType(
        slug='product-demo',
        title='Product demo',
        duration_minutes=60,
        organizer_id=admin.id,
        team_id=team.id,
        participation_mode=ParticipationMode.ALL_REQUIRED,
        time_restriction_type=TimeRestrictionType.PRESET,
        time_restriction_preset_id=preset.id,
    )
    demo.members = members[1:3]

    db.add_all([intro, demo])
    db.flush()
    return [intro, demo]


def main():
    """Main seeding function"""
    print("Dropping existing database...")
    drop_db()

    print("Initializing new database...")
    init_db()

    with get_db() as db:
        team = create_team(db)
        members = create_members(db, team)
        event_types = create_event_types(db, team, members)
        db.add(SystemSetting(key=MAINTENANCE_MODE_KEY, value={'enabled': False, 'message': ''}))

        admin_token = generate_token({
            'member_id': members[0].id,
            'email': members[0].email,
            'role': members[0].role.value,
        })
        event_type_ids = [(event_type.slug, event_type.id) for event_type in event_types]

    print("\nDatabase seeded successfully!")
    print(f"- Team with {len(members)} members")
    for slug, event_type_id in event_type_ids:
        print(f"- Event type {slug}: {event_type_id}")
    if not os.environ.get('SEED_GOOGLE_REFRESH_TOKEN'):
        print("\nNo SEED_GOOGLE_REFRESH_TOKEN set: members have no calendar access yet.")
    print(f"\nAdmin token: {admin_token}")


if __name__ == "__main__":
    main()
