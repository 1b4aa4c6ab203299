from .team import Team
from .member import Member
from .time_slot_preset import TimeSlotPreset
from .event_type import EventType
from .booking import Booking
from .usage_log import ApiUsageLog
from .system_setting import SystemSetting

__all__ = [
    'Team', 'Member', 'TimeSlotPreset', 'EventType',
    'Booking', 'ApiUsageLog', 'SystemSetting'
]
