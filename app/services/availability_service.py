from datetime import datetime, timedelta
from typing import Callable, Dict
from config.config import Config
from app.models.event_type import ParticipationMode
from app.models.usage_log import UsageEndpoint
from app.services.availability_calculator import (
    DEFAULT_AVAILABILITY, DateRange, WeeklyAvailability, calculate_availability
)
from app.services.calendar_service import CalendarService
from app.services.event_type_service import EventTypeService
from app.services.usage_service import UsageService
from app.utils.logger import get_logger
from app.utils.timeutils import start_of_day_jst, utcnow

logger = get_logger(__name__)


class AvailabilityService:
    """Bookable slots for an event type"""

    def __init__(self, calendar_service: CalendarService = None,
                 usage_service: UsageService = None,
                 event_type_service: EventTypeService = None,
                 clock: Callable[[], datetime] = utcnow):
        self.calendar_service = calendar_service or CalendarService()
        self.usage_service = usage_service or UsageService()
        self.event_type_service = event_type_service or EventTypeService()
        self.clock = clock

    def get_availability(self, event_type_id: str, days_ahead: int = None) -> Dict:
        """Slots for the next ``days_ahead`` days"""
        if days_ahead is None:
            days_ahead = Config.DEFAULT_DAYS_AHEAD
        if days_ahead < 1 or days_ahead > Config.MAX_DAYS_AHEAD:
            return {
                'error': f'daysAhead must be between 1 and {Config.MAX_DAYS_AHEAD}',
                'error_type': 'validation',
            }

        resolved = self.event_type_service.resolve(event_type_id)
        if not resolved:
            return {'error': 'Event type not found', 'error_type': 'not_found'}

        event_type = resolved.event_type
        if not resolved.members:
            return {'error': 'No members with calendar access', 'error_type': 'not_found'}

        if event_type.participation_mode == ParticipationMode.ANY_AVAILABLE:
            logger.debug(f"Event type {event_type.id} uses any_available; computing with all members required")

        now = self.clock()
        date_range = DateRange(now, now + timedelta(days=days_ahead))
        # Busy data must cover the whole last local day that gets walked
        time_min = now
        time_max = start_of_day_jst(date_range.end) + timedelta(days=1)

        results = self.calendar_service.fetch_busy_for_members(resolved.members, time_min, time_max)
        busy_arrays = self.calendar_service.busy_arrays(results)

        organizer = resolved.organizer
        if organizer and organizer.availability_settings:
            weekly_availability = WeeklyAvailability.from_dict(organizer.availability_settings)
        else:
            weekly_availability = DEFAULT_AVAILABILITY

        slots = calculate_availability(
            busy_arrays,
            date_range,
            event_type.duration_minutes,
            weekly_availability=weekly_availability,
            min_notice_minutes=Config.MIN_BOOKING_NOTICE_MINUTES,
            restriction=resolved.restriction,
            now=now,
        )

        # One events-list call per member
        self.usage_service.log_usage(
            UsageEndpoint.AVAILABILITY, len(resolved.members), member_id=event_type.organizer_id
        )

        return {
            'slots': [slot.to_dict() for slot in slots],
            'timezone': Config.TIMEZONE,
            'eventType': {
                'title': event_type.title,
                'description': event_type.description,
                'durationMinutes': event_type.duration_minutes,
            },
        }
