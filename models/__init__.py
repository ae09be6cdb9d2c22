"""
Models package for the salon booking backend
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models here to ensure they're registered
from models.profile import Profile
from models.otp import OtpChallenge, OTPSendLog

__all__ = [
    'db',
    'Profile',
    'OtpChallenge',
    'OTPSendLog',
]
