import re
from typing import Dict, Mapping

PLACEHOLDER_PATTERN = re.compile(r'\{([^{}]+)\}')

NOTE_PREVIEW_LENGTH = 50


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{name}`` placeholders in a single pass.

    Unknown placeholders are left as-is, and substituted values are never
    scanned again, so a value containing ``{...}`` is inserted literally.
    """
    def _replace(match):
        key = match.group(1)
        if key in values:
            return values[key]
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def build_title_values(guest_name: str, guest_email: str, event_title: str,
                       date_text: str, time_text: str, note: str) -> Dict[str, str]:
    """Placeholder values for calendar titles, Japanese and legacy English names"""
    note_preview = (note or '')[:NOTE_PREVIEW_LENGTH]
    return {
        '予約者名': guest_name,
        'メール': guest_email,
        'メニュー名': event_title,
        '日付': date_text,
        '時刻': time_text,
        '備考': note_preview,
        # Legacy English names
        'guest_name': guest_name,
        'guest_email': guest_email,
        'event_type': event_title,
        'date': date_text,
        'time': time_text,
        'notes': note_preview,
    }
