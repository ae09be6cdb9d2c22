"""
Email OTP routes: send a verification code, verify a submitted code
"""
from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request

from models import db
from models.otp import OtpChallenge, OTPSendLog
from routes.session import start_verified_session
from utils.otp_challenge import (
    SEND_FAILED_MSG,
    DispatchError,
    OtpError,
    issue_challenge,
    verify_challenge,
)
from utils.validators import normalize_email

otp_bp = Blueprint('otp', __name__, url_prefix='/api')

OTP_SUCCESS_MSG = "OTP sent successfully"
OTP_RATE_LIMIT_MSG = "Too many verification requests. Please try again later."
SEND_LOG_RETENTION_HOURS = 24


def _request_data():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form


def _cleanup_verification_data(now):
    """
    Drop send-log rows and challenges that expired longer ago than the retention window.
    Recently expired challenges stay so verify still reports them as expired.
    """
    try:
        cutoff = now - timedelta(hours=SEND_LOG_RETENTION_HOURS)
        OTPSendLog.query.filter(OTPSendLog.sent_at <= cutoff).delete()
        OtpChallenge.query.filter(OtpChallenge.expires_at <= cutoff).delete()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning(f"OTP cleanup skipped: {str(e)}")


def _retry_after_seconds(email, now):
    """
    Seconds until email may request another code, or 0 if allowed now.
    Applies the resend cooldown and the hourly send cap.
    """
    cooldown = current_app.config.get('OTP_RESEND_COOLDOWN_SECONDS', 0)
    max_per_hour = current_app.config.get('OTP_MAX_SENDS_PER_HOUR', 0)

    if cooldown:
        last = (OTPSendLog.query.filter_by(email=email)
                .order_by(OTPSendLog.sent_at.desc()).first())
        if last:
            delta = (now - last.sent_at).total_seconds()
            if delta < cooldown:
                return max(1, int(cooldown - delta))

    if max_per_hour:
        window_start = now - timedelta(hours=1)
        recent = (OTPSendLog.query
                  .filter(OTPSendLog.email == email, OTPSendLog.sent_at >= window_start)
                  .order_by(OTPSendLog.sent_at.asc()).all())
        if len(recent) >= max_per_hour:
            oldest = recent[0].sent_at
            return max(1, int((oldest + timedelta(hours=1) - now).total_seconds()))

    return 0


def _record_send(email, now):
    try:
        db.session.add(OTPSendLog(email=email, sent_at=now))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to record OTP send for {email}: {str(e)}", exc_info=True)


@otp_bp.route('/send-otp', methods=['POST'])
def send_otp():
    """Issue a verification code to an email. Input (JSON or form): email."""
    try:
        data = _request_data()
        email = normalize_email(data.get("email"))
        now = datetime.utcnow()

        if email:
            _cleanup_verification_data(now)
            retry_after = _retry_after_seconds(email, now)
            if retry_after:
                return jsonify({
                    "error": OTP_RATE_LIMIT_MSG,
                    "retry_after_seconds": retry_after,
                }), 429

        try:
            issue_challenge(email, now=now)
        except DispatchError:
            # the challenge was replaced, so the attempt counts toward the limits
            _record_send(email, now)
            raise
        _record_send(email, now)

        return jsonify({"success": True, "message": OTP_SUCCESS_MSG})
    except OtpError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Unexpected error in send_otp: {str(e)}", exc_info=True)
        db.session.rollback()
        return jsonify({"error": SEND_FAILED_MSG}), 500


@otp_bp.route('/verify-otp', methods=['POST'])
def verify_otp():
    """Verify a code and start the session. Input (JSON or form): email, otp."""
    try:
        data = _request_data()
        email = normalize_email(data.get("email"))
        verify_challenge(email, data.get("otp"))
    except OtpError as e:
        body = {"success": False}
        body.update(e.to_dict())
        return jsonify(body), e.status_code
    except Exception as e:
        current_app.logger.error(f"Unexpected error in verify_otp: {str(e)}", exc_info=True)
        db.session.rollback()
        return jsonify({"success": False, "error": f"Internal verification exception: {str(e)}"}), 500

    try:
        start_verified_session(email)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Verified {email} but could not start session: {str(e)}", exc_info=True)

    return jsonify({"success": True, "verified": True})
