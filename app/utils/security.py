import secrets
from datetime import datetime, timedelta
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from passlib.context import CryptContext
from jose import jwt, JWTError
from config.config import Config

# Cancel tokens are stored as salted bcrypt hashes only
token_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
ALGORITHM = "HS256"

CANCEL_TOKEN_BYTES = 32


def generate_cancel_token(nbytes: int = CANCEL_TOKEN_BYTES) -> str:
    """Generate a high-entropy cancel token (hex encoded)"""
    return secrets.token_hex(nbytes)


def hash_token(token: str) -> str:
    """Hash a token for storage"""
    return token_context.hash(token)


def verify_token_hash(token: str, token_hash: Optional[str]) -> bool:
    """Verify a plaintext token against its stored hash"""
    if not token or not token_hash:
        return False
    try:
        return token_context.verify(token, token_hash)
    except ValueError:
        # Malformed stored hash
        return False


def generate_token(data: dict, expires_delta: timedelta = None) -> str:
    """Generate JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=Config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, Config.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify and decode JWT access token"""
    try:
        return jwt.decode(token, Config.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def _get_cipher() -> Fernet:
    if not Config.ENCRYPTION_KEY:
        raise RuntimeError("ENCRYPTION_KEY is not configured")
    return Fernet(Config.ENCRYPTION_KEY.encode())


def encrypt_secret(value: str) -> str:
    """Encrypt a secret (e.g. a Google refresh token) for storage"""
    return _get_cipher().encrypt(value.encode()).decode()


def decrypt_secret(value: str) -> str:
    """Decrypt a secret produced by encrypt_secret"""
    try:
        return _get_cipher().decrypt(value.encode()).decode()
    except InvalidToken as e:
        raise ValueError("Stored secret could not be decrypted") from e
