"""Tests for the SQLAlchemy usage ledger."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from applyhub.models.ai_usage import AiUsage, FeatureType
from applyhub.repositories.ai_usage_repository import (
    AiUsageRepository,
    StorageAccessError,
    lock_user_statement,
)
from applyhub.services.ai_rate_limiter import AiRateLimiter

from conftest import seed_usage

NOW = datetime(2026, 3, 2, 12, 0, 0)


def _broken_session():
    db = MagicMock()
    err = OperationalError("SELECT 1", {}, Exception("database is locked"))
    db.query.side_effect = err
    db.commit.side_effect = err
    db.execute.side_effect = err
    return db


class TestQueries:
    def test_count_since(self, db, user):
        repo = AiUsageRepository(db)
        seed_usage(db, user.id, NOW - timedelta(minutes=1))
        seed_usage(db, user.id, NOW - timedelta(minutes=3))
        seed_usage(db, user.id, NOW - timedelta(minutes=10))
        assert repo.count_since(user.id, NOW - timedelta(minutes=5)) == 2
        assert repo.count_since("nobody", NOW - timedelta(minutes=5)) == 0

    def test_oldest_since(self, db, user):
        repo = AiUsageRepository(db)
        seed_usage(db, user.id, NOW - timedelta(minutes=1))
        seed_usage(db, user.id, NOW - timedelta(minutes=4))
        seed_usage(db, user.id, NOW - timedelta(minutes=10))
        assert repo.oldest_since(user.id, NOW - timedelta(minutes=5)) == NOW - timedelta(minutes=4)

    def test_oldest_since_empty(self, db, user):
        assert AiUsageRepository(db).oldest_since(user.id, NOW) is None

    def test_list_outcomes(self, db, user):
        repo = AiUsageRepository(db)
        seed_usage(db, user.id, NOW - timedelta(minutes=2), tokens=100)
        seed_usage(db, user.id, NOW - timedelta(minutes=1), tokens=0, success=False)
        assert repo.list_outcomes(user.id) == [(100, True), (0, False)]

    def test_add(self, db, user):
        repo = AiUsageRepository(db)
        repo.add(AiUsage(user_id=user.id, feature_type="validate", total_tokens=5, response_tokens=5, success=True))
        row = db.query(AiUsage).one()
        assert row.feature_type == "validate"
        assert row.created_at is not None

    def test_lock_user_is_noop_on_sqlite(self, db, user):
        AiUsageRepository(db).lock_user(user.id)


class TestStorageErrors:
    """Every SQLAlchemy failure surfaces as StorageAccessError."""

    def test_count_since(self):
        with pytest.raises(StorageAccessError):
            AiUsageRepository(_broken_session()).count_since("u", NOW)

    def test_oldest_since(self):
        with pytest.raises(StorageAccessError):
            AiUsageRepository(_broken_session()).oldest_since("u", NOW)

    def test_list_outcomes(self):
        with pytest.raises(StorageAccessError):
            AiUsageRepository(_broken_session()).list_outcomes("u")

    def test_lock_user(self):
        with pytest.raises(StorageAccessError):
            AiUsageRepository(_broken_session()).lock_user("u")

    def test_add_rolls_back(self):
        db = _broken_session()
        with pytest.raises(StorageAccessError):
            AiUsageRepository(db).add(AiUsage(user_id="u", feature_type="autofill", success=True))
        db.rollback.assert_called_once()


class TestStrictLock:
    """
    Strict mode holds a row lock on the user from the gate check until add() commits.
    SQLite has no row locks, so blocking of a concurrent transaction can only be
    observed against PostgreSQL; here we check the emitted SQL and the transaction span.
    """

    def test_lock_statement_is_select_for_update(self):
        sql = str(lock_user_statement("user-1").compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql
        assert "users" in sql

    def test_transaction_open_from_gate_until_tracking_commit(self, db, user):
        user_id = user.id
        db.commit()
        assert not db.in_transaction()

        limiter = AiRateLimiter(AiUsageRepository(db), strict=True)
        assert limiter.check_rate_limit(user_id).allowed is True
        assert db.in_transaction()

        limiter.track_ai_usage(user_id, FeatureType.AUTOFILL, 12, True)
        assert not db.in_transaction()
        assert db.query(AiUsage).count() == 1
