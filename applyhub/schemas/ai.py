from pydantic import BaseModel, Field
from applyhub.utils.clock import UtcDateTime


# ---- Autofill ----

class AiAutofillRequest(BaseModel):
    resume_text: str = Field(..., min_length=50, max_length=50000)


class ExtractedResumeData(BaseModel):
    """Fields the model could find in a resume; null when absent."""
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    current_position: str | None = None
    company: str | None = None
    years_experience: float | None = None
    key_achievements: str | None = None
    primary_skills: str | None = None
    programming_languages: str | None = None
    frameworks: str | None = None


class AiAutofillResponse(BaseModel):
    extracted: ExtractedResumeData
    tokens_used: int = 0
    remaining: int = 0


# ---- Improve ----

class AiImproveRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    field_name: str = Field(..., min_length=1, max_length=100)


class AiImproveResponse(BaseModel):
    improved: str
    tokens_used: int = 0
    remaining: int = 0


# ---- Usage ----

class AiUsageStatsOut(BaseModel):
    total_requests: int
    total_tokens: int
    success_rate: float
    recent_requests: int


class AiUsageResponse(BaseModel):
    remaining: int
    reset_at: UtcDateTime
    total_used: int
    stats: AiUsageStatsOut
