"""
OTP challenge protocol: issue a code for an email identity, verify a submitted code.

Verification order is attempt limit, then expiry, then hash comparison.
Only a matching code clears the challenge; a mismatch burns one attempt.
"""
import logging
from datetime import datetime

from utils.otp_helper import (
    generate_otp,
    hash_otp,
    otp_expires_at,
    remaining_attempts,
    verify_otp,
)
from utils.otp_store import OtpChallengeStore, StorageError
from utils.validators import normalize_email, validate_email

logger = logging.getLogger(__name__)

SEND_FAILED_MSG = "Failed to send verification email. Please verify SMTP settings."


class OtpError(Exception):
    """Base for OTP failures; carries the HTTP status and user-facing message."""
    status_code = 400
    message = "Verification failed."

    def __init__(self, message=None, detail=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.detail = detail

    def to_dict(self):
        return {"error": self.message}


# Issuance

class InvalidIdentity(OtpError):
    message = "A valid email identity is required."


class PersistenceError(OtpError):
    status_code = 500
    message = SEND_FAILED_MSG


class DispatchError(OtpError):
    status_code = 500
    message = SEND_FAILED_MSG


# Verification

class MissingFields(OtpError):
    message = "Email and verification code are required."


class NoActiveChallenge(OtpError):
    message = "No active verification session found for this identity."


class AttemptsExceeded(OtpError):
    status_code = 403
    message = "Max verification attempts exceeded. Request a new code."


class Expired(OtpError):
    message = "The verification code has expired."


class IncorrectCode(OtpError):
    message = "Incorrect verification code."

    def __init__(self, remaining):
        super().__init__()
        self.remaining = remaining

    def to_dict(self):
        return {"error": self.message, "remaining": self.remaining}


class InternalError(OtpError):
    status_code = 500

    def __init__(self, detail):
        super().__init__(f"Internal verification exception: {detail}", detail=detail)


def _default_transport(email, code):
    from utils.mail import send_verification_otp_email
    send_verification_otp_email(email, code)


def issue_challenge(identity, store=None, transport=None, now: datetime = None) -> str:
    """
    Create (or replace) the challenge for identity and mail the plain code.
    Returns the normalized identity.
    """
    email = normalize_email(identity)
    if not validate_email(email):
        raise InvalidIdentity()

    store = store or OtpChallengeStore()
    transport = transport or _default_transport

    code = generate_otp()
    try:
        store.upsert(email, hash_otp(code), otp_expires_at(now))
    except StorageError as e:
        logger.error(f"Failed to store verification challenge for {email}: {str(e)}", exc_info=True)
        raise PersistenceError(detail=str(e)) from e

    try:
        transport(email, code)
    except Exception as e:
        logger.error(f"Failed to dispatch verification code to {email}: {str(e)}", exc_info=True)
        raise DispatchError(detail=str(e)) from e

    logger.info("Verification code issued for %s", email)
    return email


def verify_challenge(identity, submitted_code, store=None, now: datetime = None) -> bool:
    """Check submitted_code for identity; consumes the challenge on success."""
    email = normalize_email(identity)
    code = '' if submitted_code is None else str(submitted_code).strip()
    if not email or not code:
        raise MissingFields()

    store = store or OtpChallengeStore()
    try:
        row = store.get(email)
        if row is None:
            raise NoActiveChallenge()

        attempts = row.attempts or 0
        if row.attempts_exceeded():
            logger.warning("Verification blocked for %s: attempt limit reached", email)
            raise AttemptsExceeded()
        if row.is_expired(now):
            raise Expired()

        if verify_otp(code, row.code_hash):
            if not store.delete(email, code_hash=row.code_hash):
                # consumed or replaced by a concurrent request
                raise NoActiveChallenge()
            logger.info("Verification succeeded for %s", email)
            return True

        new_attempts = store.increment_attempts(email)
        if new_attempts is None:
            new_attempts = attempts + 1
    except StorageError as e:
        logger.error(f"Storage failure verifying code for {email}: {str(e)}", exc_info=True)
        raise InternalError(str(e)) from e

    logger.warning("Incorrect verification code for %s (attempt %s)", email, new_attempts)
    raise IncorrectCode(remaining_attempts(new_attempts))
