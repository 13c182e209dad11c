from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./app.db"

    # Public URL used to build magic links
    app_url: str = "http://localhost:3000"

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Sessions / magic links
    session_cookie_name: str = "session_token"
    session_expire_days: int = 7
    magic_link_expire_minutes: int = 15
    cookie_secure: bool = False  # True in production (HTTPS only)

    # Gemini: API key takes precedence; otherwise Vertex AI
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-pro"
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC

    # AI rate limit: trailing window
    ai_rate_limit_window_minutes: int = 5
    ai_rate_limit_max_requests: int = 10
    # Lock the user row between gate check and usage tracking (PostgreSQL only)
    ai_rate_limit_strict: bool = False

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
