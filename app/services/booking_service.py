from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
from config.config import Config
from app.database import DatabaseManager, get_db
from app.integrations import CreatedEvent
from app.models import Booking, EventType, Member
from app.models.booking import BookingStatus
from app.models.event_type import DEFAULT_CALENDAR_TITLE_TEMPLATE
from app.models.usage_log import UsageEndpoint
from app.services.availability_calculator import TimeSlot, is_slot_available
from app.services.calendar_service import CalendarService
from app.services.event_type_service import EventTypeService
from app.services.rate_limiter import RateLimiter
from app.services.settings_service import SettingsService
from app.services.usage_service import UsageService
from app.utils.logger import get_logger
from app.utils.responses import service_error
from app.utils.security import generate_cancel_token, hash_token, verify_token_hash
from app.utils.template import build_title_values, render_template
from app.utils.timeutils import (
    ensure_aware, format_date_jst, format_time_jst, to_db_datetime, to_iso, utcnow
)
from app.utils.validators import BOOKING_STATUSES, validate_booking_request, validate_cancel_request

logger = get_logger(__name__)

SHORT_TERM_LIMIT_MESSAGE = 'リクエストが多すぎます。しばらく待ってから再試行してください。'
MONTHLY_LIMIT_MESSAGE = '月間API上限に達しました。管理者にお問い合わせください。'
MAINTENANCE_DEFAULT_MESSAGE = 'Service is temporarily unavailable'
CANCEL_SUCCESS_MESSAGE = '予約がキャンセルされました。'


class BookingService:
    """Creates and cancels bookings against live calendar data

    Availability is re-checked immediately before the calendar write. There
    is no lock spanning check and write, so two concurrent bookers can still
    both pass the re-check.
    """

    def __init__(self, rate_limiter: RateLimiter,
                 calendar_service: CalendarService = None,
                 usage_service: UsageService = None,
                 settings_service: SettingsService = None,
                 event_type_service: EventTypeService = None,
                 app_url: str = None,
                 clock: Callable[[], datetime] = utcnow):
        self.rate_limiter = rate_limiter
        self.calendar_service = calendar_service or CalendarService()
        self.usage_service = usage_service or UsageService(rate_limiter=rate_limiter)
        self.settings_service = settings_service or SettingsService()
        self.event_type_service = event_type_service or EventTypeService()
        self.app_url = (app_url or Config.APP_URL).rstrip('/')
        self.clock = clock
        self.booking_db = DatabaseManager(Booking)

    def _check_rate_limits(self, client_ip: str) -> Optional[Dict]:
        """Short-term IP throttle first, then the monthly ceiling"""
        if self.rate_limiter.is_short_term_limited(client_ip):
            return service_error(SHORT_TERM_LIMIT_MESSAGE, 'rate_limited', limit='short_term')

        monthly = self.rate_limiter.check_monthly_limit()
        if monthly.exceeded:
            return service_error(MONTHLY_LIMIT_MESSAGE, 'rate_limited', limit='monthly')

        return None

    def create_booking(self, data: Dict, client_ip: str) -> Dict:
        """Validate, re-check availability, write calendar events, persist"""
        request, errors = validate_booking_request(data)
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        try:
            limited = self._check_rate_limits(client_ip)
            if limited:
                return limited

            maintenance = self.settings_service.get_maintenance_mode()
            if maintenance['enabled']:
                return service_error(maintenance['message'] or MAINTENANCE_DEFAULT_MESSAGE, 'maintenance')

            resolved = self.event_type_service.resolve(request['event_type_id'])
            if not resolved:
                return service_error('Event type not found', 'not_found')

            event_type = resolved.event_type
            members = resolved.members
            slot = TimeSlot(request['start_at'], request['end_at'])

            if slot.end - slot.start != timedelta(minutes=event_type.duration_minutes):
                return service_error('Invalid request data', 'validation', details=[{
                    'field': 'endAt',
                    'message': f'Booking must last exactly {event_type.duration_minutes} minutes',
                }])

            if slot.start <= self.clock():
                return service_error('Invalid request data', 'validation', details=[{
                    'field': 'startAt', 'message': 'startAt must be in the future',
                }])

            if not members:
                return service_error('No members with calendar access', 'not_found')

            organizer = next((m for m in members if m.id == event_type.organizer_id), None)
            if not organizer:
                return service_error('Organizer not found', 'not_found')

            note_takers = self.event_type_service.get_note_takers(event_type)

            # Re-check against live calendars right before writing
            results = self.calendar_service.fetch_busy_for_members(members, slot.start, slot.end)
            failed = [result.member_id for result in results if not result.ok]
            if failed:
                logger.warning(f"Conflict check ran without calendars for members: {', '.join(failed)}")

            if not is_slot_available(slot, self.calendar_service.busy_arrays(results)):
                logger.info(f"Slot {to_iso(slot.start)} for event type {event_type.id} is no longer free")
                return service_error('Selected time slot is no longer available', 'conflict')

            access_token = self.calendar_service.get_access_token(organizer)

            internal_event = self.calendar_service.client.create_event(
                access_token,
                summary=self._render_title(event_type, request, slot),
                description=self._internal_description(request),
                start=slot.start,
                end=slot.end,
                attendees=self._internal_attendees(members, note_takers),
                organizer_email=organizer.email,
                add_meet_link=True,
            )
            guest_event = self._create_guest_event(access_token, event_type, organizer, request,
                                                   slot, internal_event.meet_link)

            cancel_token = generate_cancel_token()
            booking = self._insert_booking(request, internal_event, guest_event, hash_token(cancel_token))
            if not booking:
                self._rollback_calendar_events(access_token, internal_event, guest_event)
                return service_error('Failed to create booking', 'internal')

            # One events-list call per member plus the event insert
            self.usage_service.log_usage(
                UsageEndpoint.BOOKING_CREATE, len(members) + 1, member_id=event_type.organizer_id
            )

            logger.info(f"Booking {booking.id} confirmed for event type {event_type.id}")

            result = {
                'success': True,
                'booking': {
                    'id': booking.id,
                    'startAt': to_iso(slot.start),
                    'endAt': to_iso(slot.end),
                    'eventTitle': event_type.title,
                },
                'cancelUrl': f"{self.app_url}/cancel/{cancel_token}?bookingId={booking.id}",
            }
            if internal_event.meet_link:
                result['meetLink'] = internal_event.meet_link
            return result

        except Exception as e:
            logger.error(f"Error creating booking: {str(e)}")
            return service_error('Internal server error', 'internal')

    def _render_title(self, event_type: EventType, request: Dict, slot: TimeSlot) -> str:
        template = event_type.calendar_title_template or DEFAULT_CALENDAR_TITLE_TEMPLATE
        values = build_title_values(
            guest_name=request['name'],
            guest_email=request['email'],
            event_title=event_type.title,
            date_text=format_date_jst(slot.start),
            time_text=format_time_jst(slot.start),
            note=request['note'],
        )
        return render_template(template, values)

    @staticmethod
    def _internal_description(request: Dict) -> str:
        company_line = f"\n【会社名】\n{request['company_name']}" if request['company_name'] else ''
        return f"{request['name']} 様からのご予約{company_line}\n\n【ご相談内容・備考】\n{request['note']}"

    @staticmethod
    def _internal_attendees(members: List[Member], note_takers: List[Member]) -> List[str]:
        attendees = []
        for member in list(members) + list(note_takers):
            if member.email not in attendees:
                attendees.append(member.email)
        return attendees

    def _create_guest_event(self, access_token: str, event_type: EventType, organizer: Member,
                            request: Dict, slot: TimeSlot,
                            meet_link: Optional[str]) -> Optional[CreatedEvent]:
        """Guest-facing copy without internal notes; failure never aborts the booking"""
        try:
            return self.calendar_service.client.create_event(
                access_token,
                summary=event_type.title,
                description=f"Google Meet: {meet_link}" if meet_link else None,
                start=slot.start,
                end=slot.end,
                attendees=[request['email']],
                organizer_email=organizer.email,
                add_meet_link=False,
            )
        except Exception as e:
            logger.error(f"Failed to create guest calendar event: {str(e)}")
            return None

    def _insert_booking(self, request: Dict, internal_event: CreatedEvent,
                        guest_event: Optional[CreatedEvent], cancel_token_hash: str) -> Optional[Booking]:
        try:
            return self.booking_db.create(
                event_type_id=request['event_type_id'],
                start_at=to_db_datetime(request['start_at']),
                end_at=to_db_datetime(request['end_at']),
                requester_name=request['name'],
                requester_email=request['email'],
                company_name=request['company_name'],
                note=request['note'],
                google_event_id=internal_event.event_id,
                guest_event_id=guest_event.event_id if guest_event else None,
                meet_link=internal_event.meet_link,
                cancel_token_hash=cancel_token_hash,
                status=BookingStatus.CONFIRMED,
            )
        except Exception as e:
            logger.error(
                f"Failed to create booking record after calendar event {internal_event.event_id} "
                f"was created: {str(e)}"
            )
            return None

    def _rollback_calendar_events(self, access_token: str, internal_event: CreatedEvent,
                                  guest_event: Optional[CreatedEvent]):
        """Compensating delete for events whose booking row was never written"""
        for event in (internal_event, guest_event):
            if not event:
                continue
            try:
                self.calendar_service.client.delete_event(access_token, event.event_id)
            except Exception as e:
                logger.error(
                    f"Orphaned calendar event {event.event_id}: rollback delete failed: {str(e)}"
                )

    def cancel_booking(self, data: Dict, client_ip: str) -> Dict:
        """Cancel a booking with its single-use cancel token"""
        request, errors = validate_cancel_request(data)
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        try:
            limited = self._check_rate_limits(client_ip)
            if limited:
                return limited

            with get_db() as db:
                booking = db.query(Booking).filter_by(id=request['booking_id']).first()
                event_type = None
                organizer = None
                if booking:
                    event_type = db.query(EventType).filter_by(id=booking.event_type_id).first()
                if event_type:
                    organizer = db.query(Member).filter_by(id=event_type.organizer_id).first()

            if not booking:
                return service_error('Booking not found', 'not_found')

            if booking.status == BookingStatus.CANCELED:
                return service_error('Booking is already canceled', 'validation')

            if ensure_aware(booking.start_at) <= self.clock():
                return service_error('Cannot cancel past or ongoing events', 'validation')

            if not booking.cancel_token_hash:
                return service_error('Invalid cancel token', 'validation')

            if not verify_token_hash(request['token'], booking.cancel_token_hash):
                logger.warning(f"Invalid cancel token for booking {booking.id}")
                return service_error('Invalid cancel token', 'unauthorized')

            self._delete_booking_events(booking, organizer)

            updated = self.booking_db.update_where(
                {'id': booking.id, 'status': BookingStatus.CONFIRMED},
                status=BookingStatus.CANCELED,
                canceled_at=to_db_datetime(self.clock()),
                cancel_token_hash=None,
            )

            if not updated:
                return service_error('Booking is already canceled', 'validation')

            self.usage_service.log_usage(
                UsageEndpoint.BOOKING_CANCEL, 1,
                member_id=event_type.organizer_id if event_type else None
            )

            logger.info(f"Booking {booking.id} canceled")
            return {'success': True, 'message': CANCEL_SUCCESS_MESSAGE}

        except Exception as e:
            logger.error(f"Error canceling booking: {str(e)}")
            return service_error('Internal server error', 'internal')

    def list_bookings(self, member_id: str, status: str = None, upcoming: bool = False) -> Dict:
        """Bookings across the member's team, earliest first"""
        if status is not None and status not in BOOKING_STATUSES:
            return service_error('Invalid request data', 'validation', details=[{
                'field': 'status', 'message': f'status must be one of {BOOKING_STATUSES}',
            }])

        member, error = self.event_type_service.get_team_member(member_id)
        if error:
            return error

        with get_db() as db:
            query = db.query(Booking, EventType).join(
                EventType, Booking.event_type_id == EventType.id
            ).filter(EventType.team_id == member.team_id)

            if status:
                query = query.filter(Booking.status == BookingStatus(status))
            if upcoming:
                query = query.filter(Booking.start_at >= to_db_datetime(self.clock()))

            rows = query.order_by(Booking.start_at).all()
            return {'bookings': [self._format_booking(booking, event_type) for booking, event_type in rows]}

    @staticmethod
    def _format_booking(booking: Booking, event_type: EventType) -> Dict:
        return {
            'id': booking.id,
            'startAt': to_iso(booking.start_at),
            'endAt': to_iso(booking.end_at),
            'requesterName': booking.requester_name,
            'requesterEmail': booking.requester_email,
            'companyName': booking.company_name,
            'note': booking.note,
            'status': booking.status.value,
            'meetLink': booking.meet_link,
            'canceledAt': to_iso(booking.canceled_at) if booking.canceled_at else None,
            'eventType': {
                'id': event_type.id,
                'title': event_type.title,
                'slug': event_type.slug,
                'durationMinutes': event_type.duration_minutes,
            },
        }

    def _delete_booking_events(self, booking: Booking, organizer: Optional[Member]):
        """Best-effort removal of the booking's calendar events"""
        event_ids = [event_id for event_id in (booking.google_event_id, booking.guest_event_id) if event_id]
        if not event_ids or not organizer or not organizer.google_refresh_token:
            return

        try:
            access_token = self.calendar_service.get_access_token(organizer)
        except Exception as e:
            logger.error(f"Failed to refresh organizer token for booking {booking.id}: {str(e)}")
            return

        for event_id in event_ids:
            try:
                self.calendar_service.client.delete_event(access_token, event_id)
            except Exception as e:
                logger.error(f"Failed to delete calendar event {event_id}: {str(e)}")
