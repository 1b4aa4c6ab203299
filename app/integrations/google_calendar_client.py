import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from config.config import Config
from app.services.availability_calculator import BusySlot
from app.utils.logger import get_logger
from app.utils.security import decrypt_secret
from app.utils.timeutils import parse_iso_datetime, to_iso

logger = get_logger(__name__)

CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
]


@dataclass(frozen=True)
class CreatedEvent:
    event_id: str
    meet_link: Optional[str] = None


class GoogleCalendarClient:
    """Wrapper for the Google Calendar operations bookings need

    Every call raises on failure; callers decide whether a failure is fatal.
    """

    def __init__(self, client_id: str = None, client_secret: str = None):
        self.client_id = client_id or Config.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or Config.GOOGLE_CLIENT_SECRET
        self.timezone = Config.TIMEZONE

        if not self.client_id or not self.client_secret:
            logger.warning("Google OAuth client credentials not configured")

    def refresh_access_token(self, encrypted_refresh_token: str) -> str:
        """Exchange a stored (encrypted) refresh token for an access token"""
        refresh_token = decrypt_secret(encrypted_refresh_token)
        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=Config.GOOGLE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=CALENDAR_SCOPES,
        )
        creds.refresh(Request())

        if not creds.token:
            raise RuntimeError("Failed to refresh access token")
        return creds.token

    def _service(self, access_token: str) -> Any:
        return build("calendar", "v3", credentials=Credentials(token=access_token),
                     cache_discovery=False)

    def get_busy_slots(self, access_token: str, calendar_id: str,
                       time_min: datetime, time_max: datetime) -> List[BusySlot]:
        """Busy intervals from the events list (includes unanswered invitations)"""
        service = self._service(access_token)
        busy_slots = []
        page_token = None

        while True:
            response = service.events().list(
                calendarId=calendar_id,
                timeMin=to_iso(time_min),
                timeMax=to_iso(time_max),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ).execute()

            for event in response.get("items", []):
                slot = self._event_to_busy_slot(event)
                if slot:
                    busy_slots.append(slot)

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return busy_slots

    @staticmethod
    def _event_to_busy_slot(event: Dict[str, Any]) -> Optional[BusySlot]:
        if event.get("status") == "cancelled":
            return None

        for attendee in event.get("attendees", []):
            if attendee.get("self") and attendee.get("responseStatus") == "declined":
                return None

        # All-day events only carry "date"
        start = event.get("start", {}).get("dateTime")
        end = event.get("end", {}).get("dateTime")
        if not start or not end:
            return None

        return BusySlot(parse_iso_datetime(start), parse_iso_datetime(end))

    def create_event(self, access_token: str, summary: str, start: datetime, end: datetime,
                     attendees: List[str], organizer_email: str, description: str = None,
                     add_meet_link: bool = False) -> CreatedEvent:
        """Create an event on the primary calendar and notify attendees"""
        service = self._service(access_token)

        body = {
            "summary": summary,
            "start": {"dateTime": to_iso(start), "timeZone": self.timezone},
            "end": {"dateTime": to_iso(end), "timeZone": self.timezone},
            "attendees": [{"email": email} for email in attendees],
            "organizer": {"email": organizer_email},
        }
        if description:
            body["description"] = description

        if add_meet_link:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": f"meet-{uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        params = {"calendarId": "primary", "sendUpdates": "all", "body": body}
        if add_meet_link:
            params["conferenceDataVersion"] = 1

        event = service.events().insert(**params).execute()

        event_id = event.get("id")
        if not event_id:
            raise RuntimeError("Failed to create calendar event")

        meet_link = None
        for entry_point in event.get("conferenceData", {}).get("entryPoints", []):
            if entry_point.get("entryPointType") == "video":
                meet_link = entry_point.get("uri")
                break

        logger.info(f"Calendar event created: {event_id}")
        return CreatedEvent(event_id=event_id, meet_link=meet_link)

    def delete_event(self, access_token: str, event_id: str):
        """Delete an event from the primary calendar and notify attendees"""
        service = self._service(access_token)
        service.events().delete(calendarId="primary", eventId=event_id, sendUpdates="all").execute()
        logger.info(f"Calendar event deleted: {event_id}")
