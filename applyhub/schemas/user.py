from pydantic import BaseModel, Field
from applyhub.utils.clock import UtcDateTime

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserResponse(BaseModel):
    id: str
    email: str
    created_at: UtcDateTime

    class Config:
        from_attributes = True


class MagicLinkRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)


class MagicLinkResponse(BaseModel):
    success: bool = True
    magic_link: str


class VerifyTokenRequest(BaseModel):
    token: str = Field(..., min_length=64, max_length=64, pattern=r"^[a-f0-9]+$")


class VerifyTokenResponse(BaseModel):
    success: bool = True
    redirect_url: str = "/form"


class SessionInfoResponse(BaseModel):
    authenticated: bool
    user: UserResponse | None = None
