import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from cvforge.db.base import Base


class CoverLetter(Base):
    __tablename__ = "cover_letters"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    cv_id = Column(String(36), ForeignKey("cvs.id"), nullable=True)

    job_title = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    company_description = Column(Text, nullable=True)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
