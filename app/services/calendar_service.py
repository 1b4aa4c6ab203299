from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence
from app.integrations import GoogleCalendarClient
from app.models import Member
from app.services.availability_calculator import BusySlot
from app.utils.logger import get_logger

logger = get_logger(__name__)

PRIMARY_CALENDAR = 'primary'


@dataclass
class BusyFetchResult:
    """Outcome of one member's busy lookup"""
    member_id: str
    busy_slots: List[BusySlot] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CalendarService:
    """Per-member calendar access on top of GoogleCalendarClient"""

    def __init__(self, client: GoogleCalendarClient = None):
        self.client = client or GoogleCalendarClient()

    def fetch_busy_for_members(self, members: Sequence[Member], time_min: datetime,
                               time_max: datetime) -> List[BusyFetchResult]:
        """Busy intervals for each member; a failing member is recorded, not raised"""
        results = []
        for member in members:
            try:
                access_token = self.client.refresh_access_token(member.google_refresh_token)
                busy_slots = self.client.get_busy_slots(access_token, PRIMARY_CALENDAR, time_min, time_max)
                results.append(BusyFetchResult(member_id=member.id, busy_slots=busy_slots))
            except Exception as e:
                logger.error(f"Failed to get busy times for member {member.id}: {str(e)}")
                results.append(BusyFetchResult(member_id=member.id, error=type(e).__name__))
        return results

    @staticmethod
    def busy_arrays(results: Sequence[BusyFetchResult]) -> List[List[BusySlot]]:
        """Busy arrays from successful lookups only"""
        return [result.busy_slots for result in results if result.ok]

    def get_access_token(self, member: Member) -> str:
        """Access token for a member; raises when the refresh fails"""
        return self.client.refresh_access_token(member.google_refresh_token)
