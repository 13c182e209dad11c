"""
AI usage ledger persistence. Append-only: rows are inserted, counted and read, never updated.
All SQLAlchemy failures surface as StorageAccessError so callers can pick fail-open or fail-closed.
"""
from datetime import datetime
from typing import Protocol

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from applyhub.models.ai_usage import AiUsage
from applyhub.models.user import User


class StorageAccessError(Exception):
    """The usage ledger could not complete a read, count or insert."""


class AiUsageStore(Protocol):
    """What the rate limiter needs from persistence."""

    def add(self, record: AiUsage) -> None: ...

    def count_since(self, user_id: str, since: datetime) -> int: ...

    def oldest_since(self, user_id: str, since: datetime) -> datetime | None: ...

    def list_outcomes(self, user_id: str) -> list[tuple[int, bool]]: ...

    def lock_user(self, user_id: str) -> None: ...


def lock_user_statement(user_id: str) -> Select:
    return select(User.id).where(User.id == user_id).with_for_update()


class AiUsageRepository:
    """SQLAlchemy-backed AiUsageStore bound to one request session."""

    def __init__(self, db: Session):
        self._db = db

    def add(self, record: AiUsage) -> None:
        try:
            self._db.add(record)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            raise StorageAccessError(f"Failed to record AI usage: {e}") from e

    def count_since(self, user_id: str, since: datetime) -> int:
        try:
            return self._db.query(func.count(AiUsage.id)).filter(
                AiUsage.user_id == user_id,
                AiUsage.created_at >= since,
            ).scalar() or 0
        except SQLAlchemyError as e:
            raise StorageAccessError(f"Failed to check rate limit: {e}") from e

    def oldest_since(self, user_id: str, since: datetime) -> datetime | None:
        try:
            row = (
                self._db.query(AiUsage.created_at)
                .filter(AiUsage.user_id == user_id, AiUsage.created_at >= since)
                .order_by(AiUsage.created_at)
                .limit(1)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageAccessError(f"Failed to check rate limit: {e}") from e
        return row[0] if row else None

    def list_outcomes(self, user_id: str) -> list[tuple[int, bool]]:
        """(total_tokens, success) for every record of the user, oldest first."""
        try:
            rows = (
                self._db.query(AiUsage.total_tokens, AiUsage.success)
                .filter(AiUsage.user_id == user_id)
                .order_by(AiUsage.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageAccessError(f"Failed to load AI usage: {e}") from e
        return [(r[0] or 0, bool(r[1])) for r in rows]

    def lock_user(self, user_id: str) -> None:
        """
        Row-lock the user until the session's transaction ends (commit in add() or session close).
        No-op on SQLite, which has no SELECT ... FOR UPDATE.
        """
        try:
            self._db.execute(lock_user_statement(user_id)).first()
        except SQLAlchemyError as e:
            raise StorageAccessError(f"Failed to lock user for rate limit: {e}") from e
