"""
AI endpoints for the application form:
- POST /api/ai/autofill — extract form fields from resume text
- POST /api/ai/improve — rewrite a form field
- GET /api/ai/usage — rate limit state and usage stats
Both AI endpoints share one trailing-window limit (default 10 requests / 5 minutes).
Every attempt that passes the gate is tracked once, on success and on failure.
"""
import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from applyhub.auth import get_current_user
from applyhub.config import get_settings
from applyhub.database import get_db
from applyhub.models.ai_usage import FeatureType
from applyhub.models.user import User
from applyhub.repositories.ai_usage_repository import AiUsageRepository, StorageAccessError
from applyhub.schemas.ai import (
    AiAutofillRequest,
    AiAutofillResponse,
    AiImproveRequest,
    AiImproveResponse,
    AiUsageResponse,
    AiUsageStatsOut,
)
from applyhub.services import ai_service
from applyhub.services.ai_rate_limiter import AiRateLimiter, RateLimitDecision
from applyhub.utils.clock import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


def get_rate_limiter(db: Session = Depends(get_db)) -> AiRateLimiter:
    settings = get_settings()
    return AiRateLimiter(
        AiUsageRepository(db),
        window=timedelta(minutes=settings.ai_rate_limit_window_minutes),
        max_requests=settings.ai_rate_limit_max_requests,
        strict=settings.ai_rate_limit_strict,
    )


def _storage_unavailable(e: StorageAccessError) -> HTTPException:
    logger.error("AI usage ledger unavailable: %s", e)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Usage service temporarily unavailable. Please try again later.",
    )


def _require_allowed(limiter: AiRateLimiter, user_id: str) -> RateLimitDecision:
    """Gate check, failing closed when the ledger cannot be read."""
    try:
        info = limiter.check_rate_limit(user_id)
    except StorageAccessError as e:
        raise _storage_unavailable(e) from e
    if not info.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Rate limit exceeded",
                "remaining": 0,
                "reset_at": as_utc(info.reset_at).isoformat(),
            },
        )
    return info


@router.post("/autofill", response_model=AiAutofillResponse)
def ai_autofill(
    body: AiAutofillRequest,
    user: User = Depends(get_current_user),
    limiter: AiRateLimiter = Depends(get_rate_limiter),
):
    """Extract form fields from pasted resume text."""
    info = _require_allowed(limiter, user.id)

    try:
        extracted, tokens_used = ai_service.extract_resume_data(body.resume_text)
    except Exception as e:
        logger.exception("AI autofill failed")
        limiter.track_ai_usage(user.id, FeatureType.AUTOFILL, 0, False, str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI service temporarily unavailable. Please try again later.",
        ) from e

    limiter.track_ai_usage(user.id, FeatureType.AUTOFILL, tokens_used, True)
    return AiAutofillResponse(
        extracted=extracted,
        tokens_used=tokens_used,
        remaining=max(0, info.remaining - 1),
    )


@router.post("/improve", response_model=AiImproveResponse)
def ai_improve(
    body: AiImproveRequest,
    user: User = Depends(get_current_user),
    limiter: AiRateLimiter = Depends(get_rate_limiter),
):
    """Rewrite one form field to read more professionally."""
    info = _require_allowed(limiter, user.id)

    try:
        improved, tokens_used = ai_service.improve_text(body.text, body.field_name)
    except Exception as e:
        logger.exception("AI improve failed")
        limiter.track_ai_usage(user.id, FeatureType.IMPROVE, 0, False, str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI service temporarily unavailable. Please try again later.",
        ) from e

    limiter.track_ai_usage(user.id, FeatureType.IMPROVE, tokens_used, True)
    return AiImproveResponse(
        improved=improved,
        tokens_used=tokens_used,
        remaining=max(0, info.remaining - 1),
    )


@router.get("/usage", response_model=AiUsageResponse)
def ai_usage(
    user: User = Depends(get_current_user),
    limiter: AiRateLimiter = Depends(get_rate_limiter),
):
    try:
        info = limiter.check_rate_limit(user.id)
        stats = limiter.get_ai_usage_stats(user.id)
    except StorageAccessError as e:
        raise _storage_unavailable(e) from e

    return AiUsageResponse(
        remaining=info.remaining,
        reset_at=info.reset_at,
        total_used=info.total_used,
        stats=AiUsageStatsOut(
            total_requests=stats.total_requests,
            total_tokens=stats.total_tokens,
            success_rate=stats.success_rate,
            recent_requests=stats.recent_requests,
        ),
    )
