"""In-progress application form. One row per user; replaced on every save."""
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON
from applyhub.database import Base
from applyhub.utils.clock import utcnow


class FormProgress(Base):
    __tablename__ = "form_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    form_data = Column(JSON, nullable=False, default=dict)
    current_step = Column(Integer, nullable=False, default=1)
    last_saved_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)
