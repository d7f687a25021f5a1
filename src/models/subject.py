from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class SubjectModel(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    professional_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    course_valid_id = Column(
        Integer, ForeignKey("course_valid.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    teacher = relationship("UserModel")
    course = relationship("CourseModel")
    classes = relationship(
        "ClassModel",
        back_populates="subject",
        cascade="all, delete-orphan",
    )
