from .logger import setup_logger, get_logger
from .security import (
    generate_cancel_token, hash_token, verify_token_hash,
    generate_token, verify_token, encrypt_secret, decrypt_secret
)
from .validators import validate_email, validate_booking_request, validate_cancel_request
from .template import render_template

__all__ = [
    'setup_logger', 'get_logger',
    'generate_cancel_token', 'hash_token', 'verify_token_hash',
    'generate_token', 'verify_token', 'encrypt_secret', 'decrypt_secret',
    'validate_email', 'validate_booking_request', 'validate_cancel_request',
    'render_template'
]
