import pytest
from datetime import datetime, timedelta, timezone
from app.utils.security import (
    decrypt_secret, encrypt_secret, generate_cancel_token, generate_token, hash_token,
    verify_token, verify_token_hash
)
from app.utils.template import build_title_values, render_template
from app.utils.timeutils import (
    JST, at_local_time, format_date_jst, format_time_jst, parse_iso_datetime, to_db_datetime, to_iso
)
from app.utils.validators import (
    validate_booking_request, validate_cancel_request, validate_weekly_availability
)


def title_values(**overrides):
    values = dict(guest_name='山田太郎', guest_email='taro@example.com', event_title='Intro call',
                  date_text='2026/3/3', time_text='10:00', note='相談')
    values.update(overrides)
    return build_title_values(**values)


class TestTemplate:
    """Test calendar title rendering"""

    def test_japanese_placeholders(self):
        title = render_template('{メニュー名} - {予約者名} ({日付} {時刻})', title_values())
        assert title == 'Intro call - 山田太郎 (2026/3/3 10:00)'

    def test_legacy_placeholders(self):
        title = render_template('{event_type}: {guest_name} <{guest_email}>', title_values())
        assert title == 'Intro call: 山田太郎 <taro@example.com>'

    def test_note_truncated(self):
        values = title_values(note='あ' * 80)
        assert render_template('{備考}', values) == 'あ' * 50
        assert values['notes'] == 'あ' * 50

    def test_single_pass(self):
        """A value containing a placeholder is inserted literally"""
        values = title_values(guest_name='{メール}')
        assert render_template('{予約者名} / {メール}', values) == '{メール} / taro@example.com'

    def test_unknown_placeholder_kept(self):
        assert render_template('{unknown} {予約者名}', title_values()) == '{unknown} 山田太郎'


class TestTimeUtils:
    """Test Tokyo time helpers"""

    def test_parse_with_offset_and_z(self):
        assert parse_iso_datetime('2026-03-03T10:00:00+09:00') == parse_iso_datetime('2026-03-03T01:00:00Z')

    def test_parse_rejects_naive(self):
        with pytest.raises(ValueError):
            parse_iso_datetime('2026-03-03T10:00:00')

    def test_to_iso(self):
        assert to_iso(datetime(2026, 3, 3, 10, 0, tzinfo=JST)) == '2026-03-03T01:00:00Z'

    def test_db_datetime_is_naive_utc(self):
        stored = to_db_datetime(datetime(2026, 3, 3, 10, 0, tzinfo=JST))
        assert stored == datetime(2026, 3, 3, 1, 0)
        assert stored.tzinfo is None

    def test_formatting(self):
        value = datetime(2026, 3, 4, 23, 30, tzinfo=timezone.utc)
        assert format_date_jst(value) == '2026/3/5'
        assert format_time_jst(value) == '08:30'

    def test_midnight_rollover(self):
        day = datetime(2026, 3, 3).date()
        assert at_local_time(day, 24, 0) == datetime(2026, 3, 4, 0, 0, tzinfo=JST)


class TestSecurity:
    """Test cancel tokens, JWTs and secret encryption"""

    def test_cancel_token_hash(self):
        token = generate_cancel_token()
        assert len(token) == 64
        token_hash = hash_token(token)
        assert token_hash != token
        assert verify_token_hash(token, token_hash)
        assert not verify_token_hash('0' * 64, token_hash)
        assert not verify_token_hash(token, None)

    def test_tokens_unique(self):
        assert generate_cancel_token() != generate_cancel_token()

    def test_jwt(self):
        token = generate_token({'member_id': 'abc', 'role': 'admin'})
        payload = verify_token(token)
        assert payload['member_id'] == 'abc'
        assert verify_token(token + 'x') is None

    def test_expired_jwt(self):
        token = generate_token({'member_id': 'abc'}, expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_encrypt_round_trip(self):
        encrypted = encrypt_secret('refresh-token')
        assert encrypted != 'refresh-token'
        assert decrypt_secret(encrypted) == 'refresh-token'

    def test_decrypt_garbage(self):
        with pytest.raises(ValueError):
            decrypt_secret('not-a-fernet-token')


@pytest.fixture
def booking_payload():
    return {
        'eventTypeId': '7c9e6679-7425-40de-944b-e07fc1f90ae7',
        'startAt': '2026-03-03T10:00:00+09:00',
        'endAt': '2026-03-03T10:30:00+09:00',
        'name': ' 山田太郎 ',
        'email': 'taro@example.com',
        'note': '相談',
    }


class TestValidators:
    """Test request payload validation"""

    def test_valid_booking(self, booking_payload):
        cleaned, errors = validate_booking_request(booking_payload)
        assert errors == []
        assert cleaned['name'] == '山田太郎'
        assert cleaned['company_name'] is None
        assert cleaned['start_at'] == datetime(2026, 3, 3, 10, 0, tzinfo=JST)

    @pytest.mark.parametrize('field, value', [
        ('eventTypeId', 'not-a-uuid'),
        ('startAt', 'tomorrow'),
        ('startAt', '2026-03-03T10:00:00'),
        ('email', 'taro@'),
        ('name', ''),
        ('note', None),
    ])
    def test_invalid_field(self, booking_payload, field, value):
        booking_payload[field] = value
        cleaned, errors = validate_booking_request(booking_payload)
        assert cleaned is None
        assert field in {error['field'] for error in errors}

    def test_end_before_start(self, booking_payload):
        booking_payload['endAt'] = '2026-03-03T09:30:00+09:00'
        _, errors = validate_booking_request(booking_payload)
        assert errors == [{'field': 'endAt', 'message': 'endAt must be after startAt'}]

    def test_non_object_body(self):
        cleaned, errors = validate_booking_request(None)
        assert cleaned is None
        assert errors[0]['field'] == 'body'

    def test_cancel_request(self):
        cleaned, errors = validate_cancel_request({
            'bookingId': '7c9e6679-7425-40de-944b-e07fc1f90ae7', 'token': 'abc'
        })
        assert errors == []
        assert cleaned == {'booking_id': '7c9e6679-7425-40de-944b-e07fc1f90ae7', 'token': 'abc'}

    def test_weekly_availability(self):
        day = {'enabled': True, 'startTime': '09:00', 'endTime': '18:00'}
        payload = {str(i): dict(day) for i in range(7)}
        assert validate_weekly_availability(payload) == (True, [])

        payload['2']['endTime'] = '25:00'
        payload['7'] = dict(day)
        valid, errors = validate_weekly_availability(payload)
        assert not valid
        assert {error['field'] for error in errors} == {'2.endTime', '7'}

    def test_weekly_availability_all_day_flag(self):
        day = {'enabled': True, 'startTime': '00:00', 'endTime': '24:00', 'allDay': 'yes'}
        payload = {str(i): dict(day) for i in range(7)}
        valid, errors = validate_weekly_availability(payload)
        assert not valid
        assert len(errors) == 7
