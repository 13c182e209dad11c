from applyhub.models.user import User
from applyhub.models.magic_link_token import MagicLinkToken
from applyhub.models.user_session import UserSession
from applyhub.models.form_progress import FormProgress
from applyhub.models.form_submission import FormSubmission
from applyhub.models.ai_usage import AiUsage, FeatureType

__all__ = [
    "User", "MagicLinkToken", "UserSession", "FormProgress", "FormSubmission",
    "AiUsage", "FeatureType",
]
