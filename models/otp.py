"""
Email OTP challenge models (PostgreSQL-compatible).
Used for one-time-code identity verification before booking.
"""
from models import db
from datetime import datetime

from utils.otp_helper import MAX_OTP_ATTEMPTS, is_expired


class OtpChallenge(db.Model):
    """
    Stores hashed OTP for one identity.
    One active record per email; replaced on new send, deleted on success.
    """
    __tablename__ = 'otps'

    email = db.Column(db.String(254), primary_key=True)
    code_hash = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0, server_default='0')

    def is_expired(self, now=None):
        return is_expired(self.expires_at, now)

    def attempts_exceeded(self):
        return (self.attempts or 0) >= MAX_OTP_ATTEMPTS

    def to_dict(self):
        """Public view of the row; the hash is never exposed."""
        return {
            'email': self.email,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'attempts': self.attempts or 0,
        }

    def __repr__(self):
        return f'<OtpChallenge {self.email}>'


class OTPSendLog(db.Model):
    """Log of OTP sends per email for rate limiting (e.g. max 5 per hour)."""
    __tablename__ = 'otp_send_log'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), nullable=False, index=True)
    sent_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
