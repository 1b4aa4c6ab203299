from typing import Dict
from app.database import DatabaseManager, get_db
from app.models import Member, SystemSetting
from app.models.system_setting import MAINTENANCE_MODE_KEY
from app.services.availability_calculator import DEFAULT_AVAILABILITY, WeeklyAvailability
from app.utils.logger import get_logger
from app.utils.validators import validate_weekly_availability

logger = get_logger(__name__)

DEFAULT_MAINTENANCE_MODE = {'enabled': False, 'message': ''}


class SettingsService:
    """System-wide flags and per-member availability settings"""

    def __init__(self):
        self.member_db = DatabaseManager(Member)

    def get_maintenance_mode(self) -> Dict:
        setting = DatabaseManager(SystemSetting).get_by(key=MAINTENANCE_MODE_KEY)
        if not setting or not isinstance(setting.value, dict):
            return dict(DEFAULT_MAINTENANCE_MODE)
        return {
            'enabled': bool(setting.value.get('enabled', False)),
            'message': setting.value.get('message') or '',
        }

    def update_maintenance_mode(self, enabled: bool, message: str = '') -> Dict:
        """Create or replace the maintenance_mode setting"""
        value = {'enabled': bool(enabled), 'message': message or ''}
        with get_db() as db:
            setting = db.query(SystemSetting).filter_by(key=MAINTENANCE_MODE_KEY).first()
            if setting:
                setting.value = value
            else:
                db.add(SystemSetting(key=MAINTENANCE_MODE_KEY, value=value))

        logger.info(f"Maintenance mode {'enabled' if enabled else 'disabled'}")
        return value

    def get_member_availability(self, member_id: str) -> Dict:
        member = self.member_db.get(member_id)
        if not member:
            return {'error': 'Member not found', 'error_type': 'not_found'}

        if member.availability_settings:
            availability = WeeklyAvailability.from_dict(member.availability_settings)
        else:
            availability = DEFAULT_AVAILABILITY
        return {'availability': availability.to_dict()}

    def update_member_availability(self, member_id: str, payload: Dict) -> Dict:
        valid, errors = validate_weekly_availability(payload)
        if not valid:
            return {'error': 'Invalid request data', 'error_type': 'validation', 'details': errors}

        availability = WeeklyAvailability.from_dict(payload)
        member = self.member_db.update(member_id, availability_settings=availability.to_dict())
        if not member:
            return {'error': 'Member not found', 'error_type': 'not_found'}

        logger.info(f"Updated availability settings for member {member_id}")
        return {'success': True, 'availability': member.availability_settings}
