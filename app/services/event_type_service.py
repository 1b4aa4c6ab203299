import re
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from app.database import DatabaseManager, get_db
from app.models import Booking, EventType, Member, TimeSlotPreset
from app.models.event_type import (
    DEFAULT_CALENDAR_TITLE_TEMPLATE, ParticipationMode, TimeRestrictionType, event_type_members
)
from app.models.member import MemberRole
from app.services.availability_calculator import TimeRestriction
from app.utils.logger import get_logger
from app.utils.responses import service_error
from app.utils.timeutils import to_iso
from app.utils.validators import validate_event_type_payload, validate_uuid

logger = get_logger(__name__)


@dataclass
class ResolvedEventType:
    """An active event type with the members whose calendars gate it"""
    event_type: EventType
    organizer: Optional[Member]
    members: List[Member]
    restriction: Optional[TimeRestriction]


class EventTypeService:
    """Event type lookups for booking and their team management"""

    def __init__(self):
        self.event_type_db = DatabaseManager(EventType)

    def resolve(self, event_type_id: str) -> Optional[ResolvedEventType]:
        """Active event type, organizer, and required members

        Required members are the assigned members plus the organizer,
        restricted to active members with a calendar token. Returns None if
        the event type does not exist or is inactive.
        """
        with get_db() as db:
            event_type = db.query(EventType).filter(
                EventType.id == event_type_id,
                EventType.is_active == True  # noqa: E712
            ).first()

            if not event_type:
                return None

            member_ids = [
                row.member_id for row in db.query(event_type_members.c.member_id).filter(
                    event_type_members.c.event_type_id == event_type_id
                )
            ]
            if event_type.organizer_id not in member_ids:
                member_ids.append(event_type.organizer_id)

            members = db.query(Member).filter(
                Member.id.in_(member_ids),
                Member.is_active == True,  # noqa: E712
                Member.google_refresh_token.isnot(None)
            ).order_by(Member.created_at).all()

            organizer = db.query(Member).filter_by(id=event_type.organizer_id).first()
            restriction = self._load_restriction(db, event_type)

        return ResolvedEventType(
            event_type=event_type,
            organizer=organizer,
            members=members,
            restriction=restriction,
        )

    def get_note_takers(self, event_type: EventType) -> List[Member]:
        """Active team note-takers with calendar access"""
        if not event_type.include_note_takers:
            return []

        with get_db() as db:
            return db.query(Member).filter(
                Member.team_id == event_type.team_id,
                Member.is_active == True,  # noqa: E712
                Member.is_note_taker == True,  # noqa: E712
                Member.google_refresh_token.isnot(None)
            ).all()

    def _load_restriction(self, db, event_type: EventType) -> Optional[TimeRestriction]:
        if event_type.time_restriction_type == TimeRestrictionType.PRESET:
            preset = None
            if event_type.time_restriction_preset_id:
                preset = db.query(TimeSlotPreset).filter_by(id=event_type.time_restriction_preset_id).first()
            if not preset:
                logger.warning(f"Time restriction preset missing for event type {event_type.id}")
                return None
            return TimeRestriction(tuple(preset.days), preset.start_time, preset.end_time)

        if event_type.time_restriction_type == TimeRestrictionType.CUSTOM:
            custom = event_type.time_restriction_custom or {}
            try:
                return TimeRestriction(tuple(custom['days']), custom['start_time'], custom['end_time'])
            except (KeyError, TypeError):
                logger.warning(f"Invalid custom time restriction for event type {event_type.id}")
                return None

        return None

    def get_team_member(self, member_id: str) -> Tuple[Optional[Member], Optional[Dict]]:
        """Acting member and their team; (None, error) when either is missing"""
        member = DatabaseManager(Member).get(member_id)
        if not member or not member.is_active:
            return None, service_error('Member not found', 'unauthorized')
        if not member.team_id:
            return None, service_error('Team required', 'forbidden')
        return member, None

    def get_public_event_type(self, event_type_id: str = None, slug: str = None) -> Dict:
        """Active event type by id or slug, for the booking page"""
        filters = {'is_active': True}
        if slug:
            filters['slug'] = slug
        elif event_type_id and validate_uuid(event_type_id)[0]:
            filters['id'] = event_type_id
        else:
            return service_error('Event type not found', 'not_found')

        event_type = self.event_type_db.get_by(**filters)
        if not event_type:
            return service_error('Event type not found', 'not_found')
        return self._format_event_type(event_type)

    def list_event_types(self, member_id: str) -> Dict:
        """Every event type in the member's team, newest first"""
        member, error = self.get_team_member(member_id)
        if error:
            return error

        with get_db() as db:
            event_types = db.query(EventType).filter(
                EventType.team_id == member.team_id
            ).order_by(EventType.created_at.desc()).all()
            return {'eventTypes': [self._format_event_type(event_type) for event_type in event_types]}

    def get_member_ids(self, member_id: str, event_type_id: str) -> Dict:
        """Members assigned to a team event type"""
        member, error = self.get_team_member(member_id)
        if error:
            return error

        event_type = self.event_type_db.get(event_type_id)
        if not event_type or event_type.team_id != member.team_id:
            return service_error('Event type not found', 'not_found')
        return {'memberIds': [assigned.id for assigned in event_type.members]}

    def create_event_type(self, member_id: str, data: Dict) -> Dict:
        """Create an event type owned by the acting member"""
        values, errors = validate_event_type_payload(data)
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        member, error = self.get_team_member(member_id)
        if error:
            return error

        values.setdefault('calendar_title_template', DEFAULT_CALENDAR_TITLE_TEMPLATE)
        values.setdefault('time_restriction_type', TimeRestrictionType.NONE.value)
        member_ids = values.pop('member_ids', [])

        try:
            with get_db() as db:
                errors = self._check_team_references(db, member.team_id, values, member_ids)
                if errors:
                    return service_error('Invalid request data', 'validation', details=errors)

                event_type = EventType(
                    slug=generate_slug(values['title']),
                    organizer_id=member.id,
                    team_id=member.team_id,
                    **self._column_values(values)
                )
                event_type.members = self._load_members(db, member_ids)
                db.add(event_type)
                db.flush()

                logger.info(f"Event type {event_type.id} created by member {member.id}")
                return self._format_event_type(event_type)

        except Exception as e:
            logger.error(f"Error creating event type: {str(e)}")
            return service_error('Failed to create event type', 'internal')

    def update_event_type(self, member_id: str, event_type_id: str, data: Dict) -> Dict:
        """Partial update by the event type's organizer or a team admin"""
        values, errors = validate_event_type_payload(data, partial=True)
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        member, error = self.get_team_member(member_id)
        if error:
            return error

        member_ids = values.pop('member_ids', None)

        try:
            with get_db() as db:
                event_type = db.query(EventType).filter_by(id=event_type_id).first()
                error = self._check_editable(event_type, member)
                if error:
                    return error

                merged = {
                    'time_restriction_type': event_type.time_restriction_type.value,
                    'time_restriction_preset_id': event_type.time_restriction_preset_id,
                    'time_restriction_custom': event_type.time_restriction_custom,
                }
                merged.update(values)
                errors = self._check_team_references(db, member.team_id, merged, member_ids or [])
                if errors:
                    return service_error('Invalid request data', 'validation', details=errors)

                for key, value in self._column_values(values).items():
                    setattr(event_type, key, value)
                if member_ids is not None:
                    event_type.members = self._load_members(db, member_ids)
                db.flush()

                logger.info(f"Event type {event_type.id} updated by member {member.id}")
                return self._format_event_type(event_type)

        except Exception as e:
            logger.error(f"Error updating event type {event_type_id}: {str(e)}")
            return service_error('Failed to update event type', 'internal')

    def delete_event_type(self, member_id: str, event_type_id: str) -> Dict:
        """Delete an event type together with its bookings"""
        member, error = self.get_team_member(member_id)
        if error:
            return error

        try:
            with get_db() as db:
                event_type = db.query(EventType).filter_by(id=event_type_id).first()
                error = self._check_editable(event_type, member)
                if error:
                    return error

                removed = db.query(Booking).filter(
                    Booking.event_type_id == event_type.id
                ).delete(synchronize_session=False)
                db.delete(event_type)

            logger.info(f"Event type {event_type_id} deleted by member {member.id} ({removed} bookings removed)")
            return {'success': True}

        except Exception as e:
            logger.error(f"Error deleting event type {event_type_id}: {str(e)}")
            return service_error('Failed to delete event type', 'internal')

    @staticmethod
    def _check_editable(event_type: Optional[EventType], member: Member) -> Optional[Dict]:
        if not event_type or event_type.team_id != member.team_id:
            return service_error('Event type not found', 'not_found')
        if event_type.organizer_id != member.id and member.role != MemberRole.ADMIN:
            return service_error('Forbidden', 'forbidden')
        return None

    @staticmethod
    def _check_team_references(db, team_id: str, values: Dict, member_ids: List[str]) -> List[Dict]:
        """Assigned members and the restriction preset must belong to the team"""
        errors = []
        if member_ids:
            found = db.query(Member.id).filter(Member.id.in_(member_ids), Member.team_id == team_id).count()
            if found != len(member_ids):
                errors.append({'field': 'memberIds', 'message': 'Every member must belong to your team'})

        restriction_type = values.get('time_restriction_type')
        if restriction_type == TimeRestrictionType.PRESET.value:
            preset_id = values.get('time_restriction_preset_id')
            preset = preset_id and db.query(TimeSlotPreset).filter_by(id=preset_id, team_id=team_id).first()
            if not preset:
                errors.append({'field': 'timeRestrictionPresetId', 'message': 'A team preset is required'})
        elif restriction_type == TimeRestrictionType.CUSTOM.value and not values.get('time_restriction_custom'):
            errors.append({'field': 'timeRestrictionCustom', 'message': 'Custom restriction requires days and times'})
        return errors

    @staticmethod
    def _column_values(values: Dict) -> Dict:
        columns = dict(values)
        if 'participation_mode' in columns:
            columns['participation_mode'] = ParticipationMode(columns['participation_mode'])
        if 'time_restriction_type' in columns:
            columns['time_restriction_type'] = TimeRestrictionType(columns['time_restriction_type'])
        return columns

    @staticmethod
    def _load_members(db, member_ids: List[str]) -> List[Member]:
        if not member_ids:
            return []
        return db.query(Member).filter(Member.id.in_(member_ids)).all()

    @staticmethod
    def _format_event_type(event_type: EventType) -> Dict:
        """Format event type for API response"""
        return {
            'id': event_type.id,
            'slug': event_type.slug,
            'title': event_type.title,
            'description': event_type.description,
            'durationMinutes': event_type.duration_minutes,
            'organizerId': event_type.organizer_id,
            'teamId': event_type.team_id,
            'participationMode': event_type.participation_mode.value,
            'includeNoteTakers': event_type.include_note_takers,
            'calendarTitleTemplate': event_type.calendar_title_template,
            'timeRestrictionType': event_type.time_restriction_type.value,
            'timeRestrictionPresetId': event_type.time_restriction_preset_id,
            'timeRestrictionCustom': event_type.time_restriction_custom,
            'isActive': event_type.is_active,
            'createdAt': to_iso(event_type.created_at),
        }


def generate_slug(title: str) -> str:
    """URL slug from the title plus a random suffix"""
    base = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-') or 'event'
    return f"{base}-{secrets.token_hex(3)}"
