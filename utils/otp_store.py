"""
Storage collaborator for OTP challenges (table `otps`).

Contract relied on by the issuer and verifier:
  - one row per email (primary key)
  - upsert() is upsert-by-key: a single INSERT ... ON CONFLICT (email) DO UPDATE
    that resets attempts to 0, so the last issuance wins
  - every write commits before returning and publishes a change event
  - any database failure rolls back and raises StorageError
"""
from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.otp import OtpChallenge
from utils.change_feed import get_change_feed

FEED_NAME = 'otps'


class StorageError(Exception):
    """Underlying database failure; message wraps the original cause."""

    def __init__(self, operation, cause):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


def _upsert_statement(values):
    """Dialect-native upsert, or None where the dialect has no ON CONFLICT."""
    dialect = db.engine.dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        return None
    stmt = insert(OtpChallenge.__table__).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[OtpChallenge.__table__.c.email],
        set_={
            'code_hash': stmt.excluded.code_hash,
            'expires_at': stmt.excluded.expires_at,
            'attempts': 0,
        },
    )


class OtpChallengeStore:
    """SQLAlchemy-backed challenge store."""

    def __init__(self, feed=None):
        self._feed = feed

    @property
    def feed(self):
        return self._feed if self._feed is not None else get_change_feed()

    def _publish(self, event_type, record):
        feed = self.feed
        if feed is not None:
            feed.publish(FEED_NAME, event_type, record)

    def get(self, email):
        try:
            return db.session.get(OtpChallenge, email, populate_existing=True)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError("lookup", e) from e

    def upsert(self, email, code_hash, expires_at: datetime):
        """Create or replace the challenge for email with attempts = 0."""
        values = {
            'email': email,
            'code_hash': code_hash,
            'expires_at': expires_at,
            'attempts': 0,
        }
        try:
            existed = db.session.get(OtpChallenge, email) is not None
            stmt = _upsert_statement(values)
            if stmt is not None:
                db.session.execute(stmt)
            else:
                db.session.merge(OtpChallenge(**values))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError("upsert", e) from e
        self._publish('UPDATE' if existed else 'INSERT', {
            'email': email,
            'expires_at': expires_at.isoformat(),
            'attempts': 0,
        })

    def increment_attempts(self, email):
        """Add one failed attempt in SQL and return the new count (None if the row is gone)."""
        try:
            db.session.execute(
                update(OtpChallenge)
                .where(OtpChallenge.email == email)
                .values(attempts=OtpChallenge.attempts + 1)
            )
            db.session.commit()
            row = db.session.get(OtpChallenge, email, populate_existing=True)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError("attempt increment", e) from e
        if row is None:
            # consumed concurrently
            return None
        self._publish('UPDATE', row.to_dict())
        return row.attempts

    def delete(self, email, code_hash=None) -> bool:
        """
        Remove the challenge in one DELETE; True only for the request that removed it.
        With code_hash, a challenge re-issued in the meantime is left alone.
        """
        stmt = delete(OtpChallenge).where(OtpChallenge.email == email)
        if code_hash is not None:
            stmt = stmt.where(OtpChallenge.code_hash == code_hash)
        try:
            row = db.session.get(OtpChallenge, email)
            record = row.to_dict() if row is not None else {'email': email}
            result = db.session.execute(stmt)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError("delete", e) from e
        if not result.rowcount:
            return False
        self._publish('DELETE', record)
        return True
