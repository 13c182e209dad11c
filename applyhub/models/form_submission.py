import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from applyhub.database import Base
from applyhub.utils.clock import utcnow


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    form_data = Column(JSON, nullable=False)
    submitted_at = Column(DateTime, nullable=False, default=utcnow)
