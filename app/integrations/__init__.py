from .google_calendar_client import GoogleCalendarClient, CreatedEvent
from .google_chat_client import GoogleChatClient

__all__ = ['GoogleCalendarClient', 'CreatedEvent', 'GoogleChatClient']
