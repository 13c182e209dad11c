"""One-time sign-in token. Only the sha256 hash of the token is stored."""
import uuid
from sqlalchemy import Column, String, DateTime
from applyhub.database import Base
from applyhub.utils.clock import utcnow


class MagicLinkToken(Base):
    __tablename__ = "magic_link_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
