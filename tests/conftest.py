"""
Pytest configuration and fixtures for the salon booking backend tests.

Every test gets a fresh app on an in-memory SQLite database with mail suppressed.
"""
import os
import pathlib
import re
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Module-level app in app.py is built at import; keep it off any real database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from app import create_app  # noqa: E402
from config import TestConfig  # noqa: E402
from utils.mail import mail  # noqa: E402

CODE_RE = re.compile(r"\b(\d{6})\b")


@pytest.fixture
def app():
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def outbox():
    """Messages dispatched through Flask-Mail during the test."""
    with mail.record_messages() as messages:
        yield messages


def code_from(message):
    """Extract the plain 6-digit code from a captured verification email."""
    match = CODE_RE.search(message.body)
    assert match, f"no code in message body: {message.body!r}"
    return match.group(1)


class RecordingTransport:
    """Stand-in mail transport that keeps every (email, code) pair."""

    def __init__(self):
        self.sent = []

    def __call__(self, email, code):
        self.sent.append((email, code))

    @property
    def last_code(self):
        return self.sent[-1][1]


@pytest.fixture
def transport():
    return RecordingTransport()
