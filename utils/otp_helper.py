"""
OTP generation and hashing for email verification.
OTPs are hashed before storage; never store plain OTP in DB.
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

# OTP length, expiry and attempt limit
OTP_LENGTH = 6
OTP_EXPIRY_MINUTES = 5
MAX_OTP_ATTEMPTS = 3

_OTP_MIN = 10 ** (OTP_LENGTH - 1)
_OTP_MAX = 10 ** OTP_LENGTH - 1


def generate_otp() -> str:
    """Generate a secure 6-digit numeric OTP in 100000-999999 (no leading zero)."""
    return str(_OTP_MIN + secrets.randbelow(_OTP_MAX - _OTP_MIN + 1))


def hash_otp(otp: str) -> str:
    """SHA-256 hex digest of the plain OTP."""
    return hashlib.sha256(otp.encode('utf-8')).hexdigest()


def verify_otp(plain_otp: str, otp_hash: str) -> bool:
    """Verify a plain OTP against stored hash."""
    return hmac.compare_digest(hash_otp(plain_otp), otp_hash or '')


def otp_expires_at(now: datetime = None) -> datetime:
    """Return expiry datetime for new OTP (5 minutes from now)."""
    return (now or datetime.utcnow()) + timedelta(minutes=OTP_EXPIRY_MINUTES)


def is_expired(expires_at: datetime, now: datetime = None) -> bool:
    return (now or datetime.utcnow()) >= expires_at


def remaining_attempts(attempts: int) -> int:
    return max(0, MAX_OTP_ATTEMPTS - (attempts or 0))
