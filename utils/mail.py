"""
Email utility functions
"""
from flask_mail import Mail, Message
from flask import current_app

from utils.otp_helper import OTP_EXPIRY_MINUTES

mail = Mail()


def send_email(subject, recipients, body, html=None):
    """
    Send an email

    Args:
        subject: Email subject
        recipients: List of recipient email addresses
        body: Plain text body
        html: HTML body (optional)
    """
    msg = Message(
        subject=subject,
        recipients=recipients,
        body=body,
        html=html
    )
    mail.send(msg)


def _check_mail_configured():
    if 'mail' not in current_app.extensions:
        raise RuntimeError("Mail extension not initialized. Check app configuration.")
    if not current_app.config.get('MAIL_SERVER'):
        raise RuntimeError("MAIL_SERVER not configured. Please set MAIL_SERVER environment variable.")
    if not current_app.config.get('MAIL_USERNAME'):
        raise RuntimeError("MAIL_USERNAME not configured. Please set MAIL_USERNAME environment variable.")


def send_verification_otp_email(email: str, otp: str) -> None:
    """
    Send OTP verification email. Subject: "Your Verification Code".
    Uses clean HTML template; fallback plain body.
    """
    _check_mail_configured()

    app_name = current_app.config.get('APP_NAME', 'Luxe Salon')
    subject = f"Your {app_name} Verification Code"
    body = (
        f"Your verification code is: {otp}. It expires in {OTP_EXPIRY_MINUTES} minutes. "
        "Do not share this code."
    )
    try:
        send_email(subject, [email], body, html=_otp_email_html(otp, app_name))
    except Exception as e:
        current_app.logger.error(f"SMTP error sending verification email to {email}: {str(e)}", exc_info=True)
        raise


def _otp_email_html(otp: str, app_name: str) -> str:
    """Clean HTML template for OTP email."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>Your Verification Code</title></head>
    <body style="font-family: system-ui, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
        <h2 style="color: #1a1a2e;">{app_name}</h2>
        <p>Use the code below to confirm your email and continue your booking:</p>
        <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px; color: #b08d57;">{otp}</p>
        <p style="color: #666;">This code expires in {OTP_EXPIRY_MINUTES} minutes. Do not share it with anyone.</p>
        <hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;">
        <p style="font-size: 12px; color: #999;">If you did not request this, you can ignore this email.</p>
    </body>
    </html>
    """
