"""
HTTP tests for /api/send-otp and /api/verify-otp
"""
import logging
from datetime import datetime, timedelta
from smtplib import SMTPException

from conftest import code_from
from models import db
from models.otp import OtpChallenge
from utils.otp_helper import hash_otp

EMAIL = "a@b.com"


def _send(client, email=EMAIL):
    return client.post("/api/send-otp", json={"email": email})


def _verify(client, otp, email=EMAIL):
    return client.post("/api/verify-otp", json={"email": email, "otp": otp})


def test_full_scenario(app, client, outbox):
    resp = _send(client)
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "message": "OTP sent successfully"}

    assert len(outbox) == 1
    assert outbox[0].recipients == [EMAIL]
    code = code_from(outbox[0])

    with app.app_context():
        row = db.session.get(OtpChallenge, EMAIL)
        assert row.code_hash == hash_otp(code)

    resp = _verify(client, code)
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "verified": True}

    with app.app_context():
        assert db.session.get(OtpChallenge, EMAIL) is None

    # no replay
    resp = _verify(client, code)
    assert resp.status_code == 400
    assert resp.get_json() == {
        "success": False,
        "error": "No active verification session found for this identity.",
    }


def test_send_otp_rejects_invalid_email(client, outbox):
    resp = _send(client, "not-an-email")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "A valid email identity is required."}
    assert outbox == []


def test_send_otp_accepts_form_body(client, outbox):
    resp = client.post("/api/send-otp", data={"email": "user@example.com"})
    assert resp.status_code == 200
    assert outbox[0].recipients == ["user@example.com"]


def test_send_otp_missing_body(client):
    resp = client.post("/api/send-otp")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "A valid email identity is required."}


def test_send_otp_wrong_method(client):
    resp = client.get("/api/send-otp")
    assert resp.status_code == 405
    assert resp.get_json() == {"error": "Method not allowed"}


def test_verify_otp_wrong_method(client):
    resp = client.get("/api/verify-otp")
    assert resp.status_code == 405
    assert resp.get_json() == {"success": False, "error": "Method not allowed"}


def test_send_otp_smtp_failure_is_generic(client, monkeypatch):
    def refuse(*args, **kwargs):
        raise SMTPException("535 authentication failed for relay.internal")

    monkeypatch.setattr("utils.mail.send_email", refuse)
    resp = _send(client)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body == {"error": "Failed to send verification email. Please verify SMTP settings."}
    assert "relay.internal" not in resp.get_data(as_text=True)


def test_send_otp_unconfigured_mail(app, client):
    app.config["MAIL_SERVER"] = None
    resp = _send(client)
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Failed to send verification email. Please verify SMTP settings."


def test_verify_missing_fields(client):
    resp = client.post("/api/verify-otp", json={"email": EMAIL})
    assert resp.status_code == 400
    assert resp.get_json() == {
        "success": False,
        "error": "Email and verification code are required.",
    }


def test_verify_wrong_codes_then_locked(client, outbox):
    _send(client)
    code = code_from(outbox[0])
    wrong = "100000" if code != "100000" else "100001"

    for expected in (2, 1, 0):
        resp = _verify(client, wrong)
        assert resp.status_code == 400
        assert resp.get_json() == {
            "success": False,
            "error": "Incorrect verification code.",
            "remaining": expected,
        }

    resp = _verify(client, code)
    assert resp.status_code == 403
    assert resp.get_json() == {
        "success": False,
        "error": "Max verification attempts exceeded. Request a new code.",
    }


def test_verify_expired(app, client, outbox):
    _send(client)
    code = code_from(outbox[0])
    with app.app_context():
        row = db.session.get(OtpChallenge, EMAIL)
        row.expires_at = datetime.utcnow() - timedelta(seconds=1)
        db.session.commit()

    resp = _verify(client, code)
    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "error": "The verification code has expired."}


def test_reissue_invalidates_first_code(client, outbox):
    _send(client)
    _send(client)
    first, second = code_from(outbox[0]), code_from(outbox[1])

    if first != second:
        resp = _verify(client, first)
        assert resp.status_code == 400
        assert resp.get_json()["remaining"] == 2
    assert _verify(client, second).status_code == 200


def test_verify_storage_failure(client, monkeypatch):
    from utils.otp_store import StorageError

    class BrokenStore:
        def get(self, email):
            raise StorageError("lookup", Exception("connection reset"))

    monkeypatch.setattr("utils.otp_challenge.OtpChallengeStore", BrokenStore)
    resp = _verify(client, "123456")
    assert resp.status_code == 500
    assert resp.get_json() == {
        "success": False,
        "error": "Internal verification exception: lookup failed: connection reset",
    }


def test_plain_code_never_logged(client, outbox, caplog):
    caplog.set_level(logging.DEBUG)
    _send(client)
    code = code_from(outbox[0])
    wrong = "100000" if code != "100000" else "100001"

    assert _verify(client, wrong).status_code == 400
    assert _verify(client, code).status_code == 200

    assert caplog.records
    assert code not in caplog.text
    for record in caplog.records:
        assert code not in record.getMessage()


def test_smtp_failure_detail_logged_not_returned(client, monkeypatch, caplog):
    def refuse(*args, **kwargs):
        raise SMTPException("535 authentication failed for relay.internal")

    monkeypatch.setattr("utils.mail.send_email", refuse)
    caplog.set_level(logging.INFO)
    resp = _send(client)

    assert resp.status_code == 500
    assert "relay.internal" not in resp.get_data(as_text=True)
    errors = [r for r in caplog.records
              if r.levelno == logging.ERROR and "relay.internal" in r.getMessage()]
    assert errors
    assert any(r.exc_info for r in errors)
