"""
Route tests for /api/ai. The Gemini calls are patched; the ledger is real.
Every request that passes the gate must leave exactly one usage record.
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch

from applyhub.models.ai_usage import AiUsage
from applyhub.main import app
from applyhub.repositories.ai_usage_repository import AiUsageRepository, StorageAccessError
from applyhub.routers.ai import get_rate_limiter
from applyhub.schemas.ai import ExtractedResumeData
from applyhub.services.ai_rate_limiter import AiRateLimiter
from applyhub.services.ai_service import AiProviderError
from applyhub.utils.clock import utcnow

from conftest import seed_usage

RESUME = "Ada Lovelace, Senior Engineer at Analytical Engines Ltd. Python, Rust, FastAPI. " * 2


def _records(db):
    db.expire_all()
    return db.query(AiUsage).all()


def _override_limiter(store):
    app.dependency_overrides[get_rate_limiter] = lambda: AiRateLimiter(store)


class TestAutofill:
    def test_success_tracks_once(self, auth_client, db):
        extracted = ExtractedResumeData(full_name="Ada Lovelace", programming_languages="Python, Rust")
        with patch("applyhub.services.ai_service.extract_resume_data", return_value=(extracted, 321)) as extract:
            res = auth_client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 200
        body = res.json()
        assert body["extracted"]["full_name"] == "Ada Lovelace"
        assert body["tokens_used"] == 321
        assert body["remaining"] == 9
        extract.assert_called_once_with(RESUME)

        rows = _records(db)
        assert len(rows) == 1
        assert (rows[0].feature_type, rows[0].total_tokens, rows[0].success) == ("autofill", 321, True)

    def test_provider_failure_tracks_once(self, auth_client, db):
        with patch(
            "applyhub.services.ai_service.extract_resume_data",
            side_effect=AiProviderError("Gemini API error: quota"),
        ):
            res = auth_client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 502

        rows = _records(db)
        assert len(rows) == 1
        assert rows[0].success is False
        assert rows[0].total_tokens == 0
        assert rows[0].error_message == "Gemini API error: quota"

    def test_rate_limited(self, auth_client, db, user):
        for _ in range(10):
            seed_usage(db, user.id, utcnow() - timedelta(minutes=1))
        with patch("applyhub.services.ai_service.extract_resume_data") as extract:
            res = auth_client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 429
        detail = res.json()["detail"]
        assert detail["remaining"] == 0
        assert detail["reset_at"].endswith("+00:00")
        extract.assert_not_called()
        assert len(_records(db)) == 10

    def test_invalid_body_is_not_tracked(self, auth_client, db):
        res = auth_client.post("/api/ai/autofill", json={"resume_text": "too short"})
        assert res.status_code == 422
        assert _records(db) == []

    def test_requires_session(self, client):
        res = client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 401

    def test_gate_storage_failure_fails_closed(self, auth_client):
        store = MagicMock(spec=AiUsageRepository)
        store.count_since.side_effect = StorageAccessError("db down")
        _override_limiter(store)
        with patch("applyhub.services.ai_service.extract_resume_data") as extract:
            res = auth_client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 503
        extract.assert_not_called()

    def test_tracking_failure_does_not_fail_request(self, auth_client):
        store = MagicMock(spec=AiUsageRepository)
        store.count_since.return_value = 0
        store.oldest_since.return_value = None
        store.add.side_effect = StorageAccessError("insert failed")
        _override_limiter(store)
        extracted = ExtractedResumeData(full_name="Ada Lovelace")
        with patch("applyhub.services.ai_service.extract_resume_data", return_value=(extracted, 10)):
            res = auth_client.post("/api/ai/autofill", json={"resume_text": RESUME})
        assert res.status_code == 200
        store.add.assert_called_once()


class TestImprove:
    def test_success(self, auth_client, db):
        with patch("applyhub.services.ai_service.improve_text", return_value=("Led a team of five", 88)) as improve:
            res = auth_client.post("/api/ai/improve", json={"text": "i led a team", "field_name": "key_achievements"})
        assert res.status_code == 200
        assert res.json() == {"improved": "Led a team of five", "tokens_used": 88, "remaining": 9}
        improve.assert_called_once_with("i led a team", "key_achievements")

        rows = _records(db)
        assert len(rows) == 1
        assert (rows[0].feature_type, rows[0].total_tokens) == ("improve", 88)

    def test_unexpected_error_tracks_once(self, auth_client, db):
        with patch("applyhub.services.ai_service.improve_text", side_effect=RuntimeError("not configured")):
            res = auth_client.post("/api/ai/improve", json={"text": "hello", "field_name": "why_interested"})
        assert res.status_code == 502
        rows = _records(db)
        assert len(rows) == 1
        assert rows[0].success is False
        assert rows[0].error_message == "not configured"

    def test_shares_limit_with_autofill(self, auth_client, db, user):
        for _ in range(10):
            seed_usage(db, user.id, utcnow() - timedelta(minutes=1))
        res = auth_client.post("/api/ai/improve", json={"text": "hello", "field_name": "why_interested"})
        assert res.status_code == 429


class TestUsage:
    def test_empty(self, auth_client):
        res = auth_client.get("/api/ai/usage")
        assert res.status_code == 200
        body = res.json()
        assert body["remaining"] == 10
        assert body["total_used"] == 0
        assert body["stats"] == {
            "total_requests": 0,
            "total_tokens": 0,
            "success_rate": 100.0,
            "recent_requests": 0,
        }

    def test_with_history(self, auth_client, db, user):
        now = utcnow()
        seed_usage(db, user.id, now - timedelta(minutes=1), tokens=100)
        seed_usage(db, user.id, now - timedelta(minutes=2), tokens=200)
        seed_usage(db, user.id, now - timedelta(hours=1), tokens=50, success=False)
        body = auth_client.get("/api/ai/usage").json()
        assert body["remaining"] == 8
        assert body["total_used"] == 2
        assert body["stats"]["total_requests"] == 3
        assert body["stats"]["total_tokens"] == 350
        assert round(body["stats"]["success_rate"], 2) == 66.67
        assert body["stats"]["recent_requests"] == 2

    def test_storage_failure(self, auth_client):
        store = MagicMock(spec=AiUsageRepository)
        store.count_since.side_effect = StorageAccessError("db down")
        _override_limiter(store)
        assert auth_client.get("/api/ai/usage").status_code == 503

    def test_reset_at_is_a_utc_instant(self, auth_client, db, user):
        seed_usage(db, user.id, utcnow() - timedelta(minutes=1))
        reset_at = auth_client.get("/api/ai/usage").json()["reset_at"]
        assert reset_at.endswith(("Z", "+00:00"))
