import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from core.config import settings
from utils.logger import setup_logger

logger = setup_logger("SECURITY")

# Password hashing context
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
OTP_LENGTH = 6


# Helper function for consistent UTC datetime
def get_utc_now() -> datetime:
    """Get current UTC datetime with timezone awareness"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is UTC timezone aware"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# Hash password
def hash_password(password: str) -> str:
    """Hash a password with proper error handling."""
    try:
        return pwd_context.hash(password)
    except (TypeError, ValueError) as e:
        logger.error(f"Error hashing password: {str(e)}")
        raise ValueError("Failed to hash password")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash with proper error handling."""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (TypeError, ValueError) as e:
        logger.error(f"Error verifying password: {str(e)}")
        return False


def _encode(data: Dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = get_utc_now()
    to_encode = data.copy()
    to_encode["iat"] = now
    to_encode["exp"] = now + expires_delta
    # Unique id so tokens issued within the same second still differ
    to_encode["jti"] = secrets.token_hex(16)

    # Ensure the subject is always a string
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])

    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(
        {**data, "type": ACCESS_TOKEN_TYPE},
        settings.SECRET_KEY,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(
        {**data, "type": REFRESH_TOKEN_TYPE},
        settings.REFRESH_SECRET_KEY,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode an access token, raising JWTError on any failure"""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    return payload


def decode_refresh_token(token: str) -> Dict[str, Any]:
    payload = jwt.decode(
        token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM]
    )
    if payload.get("type") != REFRESH_TOKEN_TYPE:
        raise JWTError("Not a refresh token")
    return payload


def hash_token(value: str) -> str:
    """SHA-256 hex digest used for OTPs, reset and refresh tokens at rest"""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def token_matches(value: str, stored_hash: Optional[str]) -> bool:
    if not value or not stored_hash:
        return False
    return hmac.compare_digest(hash_token(value), stored_hash)


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Numeric one-time passcode without a leading zero"""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


def generate_reset_token() -> str:
    return secrets.token_hex(20)


def generate_share_code() -> str:
    """128-bit random share code, 32 hex chars"""
    return secrets.token_hex(16)
