"""
Gemini service for resume autofill and text improvement.
Uses google-genai client: Gemini API key when configured, else Vertex AI.
Each call returns (result, tokens_used) with tokens_used = prompt + candidate tokens.
"""
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from applyhub.config import get_settings
from applyhub.schemas.ai import ExtractedResumeData

logger = logging.getLogger(__name__)

# Lazy client to avoid import/credentials errors at import time
_gemini_client = None


class AiProviderError(Exception):
    """Gemini call failed or returned an unusable response."""


def _get_client():
    global _gemini_client
    if _gemini_client is not None:
        return _gemini_client
    try:
        from google import genai
        from google.oauth2 import service_account
    except ImportError as e:
        raise RuntimeError(
            "Google GenAI not installed. pip install google-genai google-auth"
        ) from e

    settings = get_settings()
    if settings.gemini_api_key:
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
        return _gemini_client

    if not settings.vertex_project_id:
        raise RuntimeError("Neither gemini_api_key nor vertex_project_id is configured")

    credentials = None
    if settings.vertex_credentials_path:
        path = Path(settings.vertex_credentials_path)
        if path.is_file():
            credentials = service_account.Credentials.from_service_account_file(
                str(path),
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )

    _gemini_client = genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        credentials=credentials,
    )
    return _gemini_client


def _token_count(usage: Any, key: str) -> int:
    """Get token count from usage_metadata (dict or Pydantic model)."""
    if usage is None:
        return 0
    if isinstance(usage, dict):
        return int(usage.get(key) or 0)
    return int(getattr(usage, key, 0) or 0)


def _generate(prompt: str, temperature: float, max_output_tokens: int = 8192) -> tuple[str, int]:
    """Single-turn generate_content. Raises AiProviderError on API errors or incomplete output."""
    client = _get_client()
    settings = get_settings()
    from google.genai.types import GenerateContentConfig

    try:
        response = client.models.generate_content(
            model=settings.gemini_model,
            contents=prompt,
            config=GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
            ),
        )
    except Exception as e:
        raise AiProviderError(f"Gemini API error: {e}") from e

    if not response or not response.candidates:
        raise AiProviderError("No candidates in model response")
    candidate = response.candidates[0]

    reason = getattr(candidate.finish_reason, "value", candidate.finish_reason)
    if reason == "MAX_TOKENS":
        raise AiProviderError("Response was cut off due to token limit")
    if reason and reason != "STOP":
        raise AiProviderError(f"Response incomplete. Finish reason: {reason}")

    if not candidate.content or not candidate.content.parts:
        raise AiProviderError("No text in model response")
    text = getattr(response, "text", None) or candidate.content.parts[0].text
    if not text:
        raise AiProviderError("No text in model response")

    usage = getattr(response, "usage_metadata", None)
    tokens_used = _token_count(usage, "prompt_token_count") + _token_count(usage, "candidates_token_count")
    return text, tokens_used


# ---- Autofill: resume extraction ----

AUTOFILL_PROMPT = """You are a resume parser. Extract structured information from the following resume text.

Return ONLY valid JSON matching this exact schema:
{{
  "full_name": "string or null",
  "email": "string or null",
  "phone": "string or null",
  "location": "string or null",
  "current_position": "string or null",
  "company": "string or null",
  "years_experience": number or null,
  "key_achievements": "string or null",
  "primary_skills": "string or null",
  "programming_languages": "string or null",
  "frameworks": "string or null"
}}

If any field cannot be found, use null for that field.
For key_achievements, extract 2-3 key accomplishments from the resume.
For primary_skills, extract the main technical skills mentioned.
For programming_languages, list the programming languages mentioned (comma-separated).
For frameworks, list frameworks/libraries mentioned (comma-separated).

Resume text:
{resume_text}"""


def strip_code_fence(text: str) -> str:
    """Remove a ```json ... ``` (or bare ```) wrapper around model output."""
    out = text.strip()
    if out.startswith("```json"):
        out = out[7:]
    elif out.startswith("```"):
        out = out[3:]
    if out.endswith("```"):
        out = out[:-3]
    return out.strip()


def extract_resume_data(resume_text: str) -> tuple[ExtractedResumeData, int]:
    text, tokens_used = _generate(AUTOFILL_PROMPT.format(resume_text=resume_text), temperature=0.3)
    try:
        data = ExtractedResumeData.model_validate(json.loads(strip_code_fence(text)))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unparseable autofill response (%d chars)", len(text))
        raise AiProviderError(f"Failed to extract resume data: {e}") from e
    return data, tokens_used


# ---- Improve: rewrite a form field ----

IMPROVE_PROMPT = """You are a professional career coach. Improve the following text to be more professional and compelling for a job application.

Keep the core meaning but make it more impactful. Use strong action verbs and quantify achievements where possible.
Return ONLY the improved text, no explanations or additional commentary.

Original text:
{text}

Context: This is for the "{field_name}" field in a job application."""


def improve_text(text: str, field_name: str) -> tuple[str, int]:
    improved, tokens_used = _generate(IMPROVE_PROMPT.format(text=text, field_name=field_name), temperature=0.7)
    return improved.strip(), tokens_used
