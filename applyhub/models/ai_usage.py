"""AI feature usage ledger for rate limiting and usage stats. Rows are append-only."""
import enum
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, Index
from applyhub.database import Base
from applyhub.utils.clock import utcnow


class FeatureType(str, enum.Enum):
    AUTOFILL = "autofill"
    IMPROVE = "improve"
    EXPAND = "expand"
    VALIDATE = "validate"


class AiUsage(Base):
    __tablename__ = "ai_usage"
    __table_args__ = (Index("ix_ai_usage_user_created", "user_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    feature_type = Column(String(16), nullable=False)  # FeatureType value
    request_tokens = Column(Integer, nullable=False, default=0)
    response_tokens = Column(Integer, nullable=False, default=0)
    total_tokens = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
