"""
Security utilities for JWT authentication, password hashing and reset OTPs.
"""
from datetime import datetime, timedelta
from typing import Optional
import hashlib
import secrets
import bcrypt
from jose import JWTError, jwt
from travelbuddy.core.config import settings
from travelbuddy.core.utils import utcnow


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash password with SHA256 to support passwords longer than 72 bytes.
    Returns bytes (32 bytes) which is well under bcrypt's 72-byte limit.
    """
    return hashlib.sha256(password.encode('utf-8')).digest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pre_hashed = _pre_hash_password(plain_password)
    return bcrypt.checkpw(pre_hashed, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """
    Hash a password.
    Pre-hashes with SHA256 first to support passwords longer than 72 bytes.
    """
    pre_hashed = _pre_hash_password(password)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pre_hashed, salt)
    return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None


def generate_otp() -> str:
    """Generate a 6-digit one-time password for password resets."""
    return f"{secrets.randbelow(900000) + 100000}"


def hash_otp(otp: str) -> str:
    """Hash an OTP for storage. OTPs are short-lived so SHA256 is enough."""
    return hashlib.sha256(otp.encode('utf-8')).hexdigest()


def otp_matches(otp: str, otp_hash: str) -> bool:
    return secrets.compare_digest(hash_otp(otp), otp_hash)


def otp_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)
