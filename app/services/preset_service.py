from typing import Dict
from app.database import DatabaseManager, get_db
from app.models import EventType, TimeSlotPreset
from app.services.event_type_service import EventTypeService
from app.utils.logger import get_logger
from app.utils.responses import service_error
from app.utils.timeutils import to_iso
from app.utils.validators import validate_preset_payload, validate_time_window

logger = get_logger(__name__)


class PresetService:
    """Team-scoped time slot presets used by event type restrictions"""

    def __init__(self, event_type_service: EventTypeService = None):
        self.preset_db = DatabaseManager(TimeSlotPreset)
        self.event_type_service = event_type_service or EventTypeService()

    def list_presets(self, member_id: str) -> Dict:
        member, error = self.event_type_service.get_team_member(member_id)
        if error:
            return error

        with get_db() as db:
            presets = db.query(TimeSlotPreset).filter(
                TimeSlotPreset.team_id == member.team_id
            ).order_by(TimeSlotPreset.created_at).all()
            return {'presets': [self._format_preset(preset) for preset in presets]}

    def create_preset(self, member_id: str, data: Dict) -> Dict:
        values, errors = validate_preset_payload(data)
        if not errors:
            errors = validate_time_window(values, '')
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        member, error = self.event_type_service.get_team_member(member_id)
        if error:
            return error

        values['days'] = sorted(set(values['days']))
        preset = self.preset_db.create(team_id=member.team_id, **values)
        logger.info(f"Time slot preset {preset.id} created for team {member.team_id}")
        return self._format_preset(preset)

    def update_preset(self, member_id: str, preset_id: str, data: Dict) -> Dict:
        values, errors = validate_preset_payload(data, partial=True)
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        member, error = self.event_type_service.get_team_member(member_id)
        if error:
            return error

        preset = self.preset_db.get(preset_id)
        if not preset or preset.team_id != member.team_id:
            return service_error('Preset not found', 'not_found')

        window = {'days': preset.days, 'start_time': preset.start_time, 'end_time': preset.end_time}
        window.update({key: value for key, value in values.items() if key in window})
        errors = validate_time_window(window, '')
        if errors:
            return service_error('Invalid request data', 'validation', details=errors)

        if 'days' in values:
            values['days'] = sorted(set(values['days']))
        preset = self.preset_db.update(preset_id, **values)
        logger.info(f"Time slot preset {preset_id} updated")
        return self._format_preset(preset)

    def delete_preset(self, member_id: str, preset_id: str) -> Dict:
        """Delete a preset; event types that used it keep no restriction preset"""
        member, error = self.event_type_service.get_team_member(member_id)
        if error:
            return error

        with get_db() as db:
            preset = db.query(TimeSlotPreset).filter_by(id=preset_id, team_id=member.team_id).first()
            if not preset:
                return service_error('Preset not found', 'not_found')

            db.query(EventType).filter(
                EventType.time_restriction_preset_id == preset_id
            ).update({EventType.time_restriction_preset_id: None}, synchronize_session=False)
            db.delete(preset)

        logger.info(f"Time slot preset {preset_id} deleted")
        return {'success': True}

    @staticmethod
    def _format_preset(preset: TimeSlotPreset) -> Dict:
        return {
            'id': preset.id,
            'name': preset.name,
            'days': preset.days,
            'startTime': preset.start_time,
            'endTime': preset.end_time,
            'color': preset.color,
            'createdAt': to_iso(preset.created_at),
        }
