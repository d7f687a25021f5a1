from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from .base import Base

ORIGIN_SUBJECT = 1
ORIGIN_CLASS = 2


class MaterialModel(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    description = Column(String(255), nullable=True)
    type = Column(String(50), nullable=False)  # e.g. 'PDF', 'DOCX'
    archive = Column(String(255), nullable=False)  # path relative to UPLOAD_DIR
    filename = Column(String(255), nullable=False)  # original upload name
    mime_type = Column(String(120), nullable=False)
    size = Column(Integer, nullable=False)
    created_by = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    subject_id = Column(
        Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    class_id = Column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), index=True, nullable=True
    )
    origin = Column(Integer, nullable=False, default=ORIGIN_SUBJECT)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
