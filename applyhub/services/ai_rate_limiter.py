"""
Rate limit for AI features over a trailing window, plus usage tracking and stats.
- Gate: at most `max_requests` attempts per user in the last `window` (default 10 per 5 minutes).
- Every attempt (success or failure) is recorded; the gate counts attempts, not successes.
- Gate and tracking are separate calls, so concurrent requests may briefly over-admit.
  `strict=True` locks the user row from the gate check until the tracking commit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from applyhub.models.ai_usage import AiUsage, FeatureType
from applyhub.repositories.ai_usage_repository import AiUsageStore
from applyhub.utils.clock import utcnow

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_MINUTES = 5
MAX_REQUESTS_PER_WINDOW = 10


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: datetime
    total_used: int


@dataclass(frozen=True)
class UsageStats:
    total_requests: int
    total_tokens: int
    success_rate: float
    recent_requests: int


class AiRateLimiter:
    """Usage ledger and rate gate for one persistence handle."""

    def __init__(
        self,
        store: AiUsageStore,
        *,
        window: timedelta = timedelta(minutes=RATE_LIMIT_WINDOW_MINUTES),
        max_requests: int = MAX_REQUESTS_PER_WINDOW,
        strict: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._window = window
        self._max_requests = max_requests
        self._strict = strict
        self._clock = clock

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def check_rate_limit(self, user_id: str) -> RateLimitDecision:
        """
        Decide whether the user may make another AI request now.
        Read-only. Raises StorageAccessError; the caller decides fail-open vs fail-closed.
        """
        if self._strict:
            self._store.lock_user(user_id)

        now = self._clock()
        window_start = now - self._window

        total_used = self._store.count_since(user_id, window_start)
        remaining = max(0, self._max_requests - total_used)
        allowed = total_used < self._max_requests

        # Window frees a slot when its oldest record ages out
        oldest = self._store.oldest_since(user_id, window_start)
        reset_at = oldest + self._window if oldest is not None else now + self._window

        return RateLimitDecision(
            allowed=allowed,
            remaining=remaining,
            reset_at=reset_at,
            total_used=total_used,
        )

    def track_ai_usage(
        self,
        user_id: str,
        feature_type: FeatureType | str,
        tokens_used: int,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        """
        Record one AI attempt. Call exactly once per attempt, on success and on failure.
        Best-effort: write failures are logged and swallowed.
        Raises ValueError for an unknown feature_type (caller bug, nothing is written).
        """
        feature = FeatureType(feature_type)
        if tokens_used < 0:
            logger.warning("Negative tokens_used=%s for user %s (%s); recording 0", tokens_used, user_id, feature.value)
            tokens_used = 0

        record = AiUsage(
            user_id=user_id,
            feature_type=feature.value,
            request_tokens=0,  # prompt tokens are not tracked separately
            response_tokens=tokens_used,
            total_tokens=tokens_used,
            success=success,
            error_message=None if success else error_message,
            created_at=self._clock(),
        )
        try:
            self._store.add(record)
        except Exception:
            logger.exception("Failed to track AI usage for user %s (%s)", user_id, feature.value)

    def get_ai_usage_stats(self, user_id: str) -> UsageStats:
        """All-time totals and success rate, plus attempts in the current window. Raises StorageAccessError."""
        outcomes = self._store.list_outcomes(user_id)
        recent = self._store.count_since(user_id, self._clock() - self._window)

        total_requests = len(outcomes)
        total_tokens = sum(tokens for tokens, _ in outcomes)
        successful = sum(1 for _, ok in outcomes if ok)
        # No history counts as a perfect record
        success_rate = (successful / total_requests) * 100 if total_requests > 0 else 100.0

        return UsageStats(
            total_requests=total_requests,
            total_tokens=total_tokens,
            success_rate=success_rate,
            recent_requests=recent,
        )
