from pydantic import BaseModel, Field, field_validator
from applyhub.utils.clock import UtcDateTime


class FormData(BaseModel):
    """Application form fields across steps 1-4. All optional while in progress."""
    # Step 1: personal info
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    # Step 2: work experience
    current_position: str | None = None
    company: str | None = None
    years_experience: float | None = None
    key_achievements: str | None = None
    # Step 3: technical skills
    primary_skills: str | None = None
    programming_languages: str | None = None
    frameworks: str | None = None
    # Step 4: motivation
    why_interested: str | None = None
    start_date: str | None = None
    expected_salary: str | None = None


class CompleteFormData(FormData):
    """Submitted form: everything except expected_salary must be filled in."""
    full_name: str
    email: str
    phone: str
    location: str
    current_position: str
    company: str
    years_experience: float = Field(..., ge=0, le=50)
    key_achievements: str
    primary_skills: str
    programming_languages: str
    frameworks: str
    why_interested: str
    start_date: str

    @field_validator(
        "full_name", "email", "phone", "location", "current_position", "company",
        "key_achievements", "primary_skills", "programming_languages", "frameworks",
        "why_interested", "start_date",
    )
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class SaveProgressRequest(BaseModel):
    form_data: FormData
    current_step: int = Field(..., ge=1, le=5)


class SaveProgressResponse(BaseModel):
    success: bool = True
    saved_at: UtcDateTime


class ProgressResponse(BaseModel):
    has_progress: bool
    data: FormData | None = None
    current_step: int | None = None


class SubmitFormRequest(BaseModel):
    form_data: CompleteFormData


class SubmitFormResponse(BaseModel):
    success: bool = True
    submission_id: str


class SubmissionOut(BaseModel):
    id: str
    form_data: dict
    submitted_at: UtcDateTime

    class Config:
        from_attributes = True


class SubmissionsResponse(BaseModel):
    submissions: list[SubmissionOut]
