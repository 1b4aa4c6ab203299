import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from config.config import Config
from app.utils.timeutils import parse_iso_datetime

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
HHMM_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$|^24:00$'

NOTE_REQUIRED_MESSAGE = 'ご相談内容・備考は必須です'


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """Validate email format"""
    if not email:
        return False, "Email is required"
    if not isinstance(email, str) or not re.match(EMAIL_PATTERN, email):
        return False, "Invalid email format"
    return True, None


def validate_uuid(value: str, field: str = 'id') -> Tuple[bool, Optional[str]]:
    """Validate a UUID string"""
    if not value or not isinstance(value, str):
        return False, f"{field} is required"
    try:
        uuid.UUID(value)
    except ValueError:
        return False, f"{field} must be a valid UUID"
    return True, None


def validate_datetime(value: str, field: str) -> Tuple[Optional[datetime], Optional[str]]:
    """Parse an ISO-8601 datetime with offset; returns (parsed, error)"""
    if not value:
        return None, f"{field} is required"
    try:
        return parse_iso_datetime(value), None
    except (TypeError, ValueError):
        return None, f"{field} must be an ISO-8601 datetime with timezone"


def validate_hhmm(value: str) -> bool:
    """Validate an "HH:MM" time of day"""
    return isinstance(value, str) and re.match(HHMM_PATTERN, value) is not None


def _required_text(data: Dict, field: str) -> Optional[str]:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def validate_booking_request(data: Dict) -> Tuple[Optional[Dict], List[Dict]]:
    """Validate a booking creation payload

    Returns (cleaned data, field errors). Cleaned data is None when any field
    is invalid.
    """
    if not isinstance(data, dict):
        return None, [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    errors = []

    valid, error = validate_uuid(data.get('eventTypeId'), 'eventTypeId')
    if not valid:
        errors.append({'field': 'eventTypeId', 'message': error})

    start_at, error = validate_datetime(data.get('startAt'), 'startAt')
    if error:
        errors.append({'field': 'startAt', 'message': error})

    end_at, error = validate_datetime(data.get('endAt'), 'endAt')
    if error:
        errors.append({'field': 'endAt', 'message': error})

    if start_at and end_at and end_at <= start_at:
        errors.append({'field': 'endAt', 'message': 'endAt must be after startAt'})

    name = _required_text(data, 'name')
    if name is None:
        errors.append({'field': 'name', 'message': 'name is required'})

    valid, error = validate_email(data.get('email'))
    if not valid:
        errors.append({'field': 'email', 'message': error})

    company_name = data.get('companyName')
    if company_name is not None and not isinstance(company_name, str):
        errors.append({'field': 'companyName', 'message': 'companyName must be a string'})

    note = _required_text(data, 'note')
    if note is None:
        errors.append({'field': 'note', 'message': NOTE_REQUIRED_MESSAGE})

    if errors:
        return None, errors

    return {
        'event_type_id': data['eventTypeId'],
        'start_at': start_at,
        'end_at': end_at,
        'name': name.strip(),
        'email': data['email'],
        'company_name': company_name or None,
        'note': note,
    }, []


def validate_cancel_request(data: Dict) -> Tuple[Optional[Dict], List[Dict]]:
    """Validate a booking cancellation payload"""
    if not isinstance(data, dict):
        return None, [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    errors = []
    valid, error = validate_uuid(data.get('bookingId'), 'bookingId')
    if not valid:
        errors.append({'field': 'bookingId', 'message': error})

    token = data.get('token')
    if not isinstance(token, str) or not token:
        errors.append({'field': 'token', 'message': 'token is required'})

    if errors:
        return None, errors
    return {'booking_id': data['bookingId'], 'token': token}, []


def validate_weekly_availability(data: Dict) -> Tuple[bool, List[Dict]]:
    """Validate a string-keyed weekly availability payload ("0".."6")"""
    if not isinstance(data, dict):
        return False, [{'field': 'body', 'message': 'Availability must be an object'}]

    errors = []
    for key in (str(i) for i in range(7)):
        day = data.get(key)
        if not isinstance(day, dict):
            errors.append({'field': key, 'message': 'Day settings are required'})
            continue
        if not isinstance(day.get('enabled'), bool):
            errors.append({'field': f'{key}.enabled', 'message': 'enabled must be a boolean'})
        for field in ('startTime', 'endTime'):
            if not validate_hhmm(day.get(field)):
                errors.append({'field': f'{key}.{field}', 'message': f'{field} must be HH:MM'})
        if 'allDay' in day and not isinstance(day['allDay'], bool):
            errors.append({'field': f'{key}.allDay', 'message': 'allDay must be a boolean'})

    extra = set(data.keys()) - {str(i) for i in range(7)}
    for key in sorted(extra):
        errors.append({'field': key, 'message': 'Unknown weekday key'})

    return not errors, errors


PARTICIPATION_MODES = ('all_required', 'any_available')
TIME_RESTRICTION_TYPES = ('none', 'preset', 'custom')
BOOKING_STATUSES = ('confirmed', 'canceled')


def validate_weekdays(value) -> bool:
    """List of weekday indexes, 0 (Sunday) to 6"""
    return isinstance(value, list) and all(
        isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6 for day in value
    )


def validate_time_window(data: Dict, prefix: str) -> List[Dict]:
    """``days``/``start_time``/``end_time`` shared by presets and custom restrictions"""
    errors = []
    if not validate_weekdays(data.get('days')):
        errors.append({'field': f'{prefix}days', 'message': 'days must be a list of weekdays 0-6'})
    for field in ('start_time', 'end_time'):
        if not validate_hhmm(data.get(field)):
            errors.append({'field': f'{prefix}{field}', 'message': f'{field} must be HH:MM'})
    if not errors and data['start_time'] >= data['end_time']:
        errors.append({'field': f'{prefix}end_time', 'message': 'end_time must be after start_time'})
    return errors


def validate_event_type_payload(data: Dict, partial: bool = False) -> Tuple[Optional[Dict], List[Dict]]:
    """Validate an event type create (or, with ``partial``, update) payload

    Returns model column values for the fields present, plus ``member_ids``
    when the payload assigns members.
    """
    if not isinstance(data, dict):
        return None, [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    errors = []
    cleaned = {}

    if 'title' in data or not partial:
        title = _required_text(data, 'title')
        if title is None:
            errors.append({'field': 'title', 'message': 'title is required'})
        else:
            cleaned['title'] = title.strip()

    if 'description' in data:
        description = data['description']
        if description is not None and not isinstance(description, str):
            errors.append({'field': 'description', 'message': 'description must be a string'})
        else:
            cleaned['description'] = description or None

    if 'durationMinutes' in data or not partial:
        duration = data.get('durationMinutes')
        if isinstance(duration, str) and duration.isdigit():
            duration = int(duration)
        if duration not in Config.ALLOWED_DURATIONS:
            errors.append({
                'field': 'durationMinutes',
                'message': f'durationMinutes must be one of {Config.ALLOWED_DURATIONS}',
            })
        else:
            cleaned['duration_minutes'] = duration

    if 'memberIds' in data:
        member_ids = data['memberIds']
        if not isinstance(member_ids, list) or not all(validate_uuid(m)[0] for m in member_ids):
            errors.append({'field': 'memberIds', 'message': 'memberIds must be a list of UUIDs'})
        else:
            cleaned['member_ids'] = list(dict.fromkeys(member_ids))

    if 'participationMode' in data:
        if data['participationMode'] not in PARTICIPATION_MODES:
            errors.append({'field': 'participationMode', 'message': f'participationMode must be one of {PARTICIPATION_MODES}'})
        else:
            cleaned['participation_mode'] = data['participationMode']

    for key, column in (('includeNoteTakers', 'include_note_takers'), ('isActive', 'is_active')):
        if key in data:
            if not isinstance(data[key], bool):
                errors.append({'field': key, 'message': f'{key} must be a boolean'})
            else:
                cleaned[column] = data[key]

    if 'calendarTitleTemplate' in data:
        template = data['calendarTitleTemplate']
        if template is not None and not isinstance(template, str):
            errors.append({'field': 'calendarTitleTemplate', 'message': 'calendarTitleTemplate must be a string'})
        else:
            cleaned['calendar_title_template'] = template or None

    if 'timeRestrictionType' in data:
        if data['timeRestrictionType'] not in TIME_RESTRICTION_TYPES:
            errors.append({
                'field': 'timeRestrictionType',
                'message': f'timeRestrictionType must be one of {TIME_RESTRICTION_TYPES}',
            })
        else:
            cleaned['time_restriction_type'] = data['timeRestrictionType']

    if 'timeRestrictionPresetId' in data:
        preset_id = data['timeRestrictionPresetId']
        if preset_id is not None and not validate_uuid(preset_id)[0]:
            errors.append({'field': 'timeRestrictionPresetId', 'message': 'timeRestrictionPresetId must be a valid UUID'})
        else:
            cleaned['time_restriction_preset_id'] = preset_id

    if 'timeRestrictionCustom' in data:
        custom = data['timeRestrictionCustom']
        if custom is None:
            cleaned['time_restriction_custom'] = None
        elif not isinstance(custom, dict):
            errors.append({'field': 'timeRestrictionCustom', 'message': 'timeRestrictionCustom must be an object'})
        else:
            window_errors = validate_time_window(custom, 'timeRestrictionCustom.')
            errors.extend(window_errors)
            if not window_errors:
                cleaned['time_restriction_custom'] = {
                    'days': sorted(set(custom['days'])),
                    'start_time': custom['start_time'],
                    'end_time': custom['end_time'],
                }

    if errors:
        return None, errors
    return cleaned, []


def validate_preset_payload(data: Dict, partial: bool = False) -> Tuple[Optional[Dict], List[Dict]]:
    """Validate a time slot preset create (or, with ``partial``, update) payload"""
    if not isinstance(data, dict):
        return None, [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    errors = []
    cleaned = {}

    if 'name' in data or not partial:
        name = _required_text(data, 'name')
        if name is None:
            errors.append({'field': 'name', 'message': '名前を入力してください'})
        else:
            cleaned['name'] = name.strip()

    # The merged window is checked with validate_time_window once existing values are known
    for field in ('days', 'start_time', 'end_time'):
        if field in data:
            cleaned[field] = data[field]

    if 'color' in data:
        if data['color'] is not None and not isinstance(data['color'], str):
            errors.append({'field': 'color', 'message': 'color must be a string'})
        else:
            cleaned['color'] = data['color']

    if errors:
        return None, errors
    return cleaned, []
