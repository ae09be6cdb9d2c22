"""
Routes package for the salon booking backend
"""
# Export blueprints for registration in app.py
from routes.otp import otp_bp
from routes.session import session_bp

__all__ = [
    'otp_bp',
    'session_bp',
]
