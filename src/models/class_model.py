from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class ClassModel(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    period = Column(String(20), nullable=False)
    capacity = Column(Integer, nullable=False)
    subject_id = Column(
        Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    course_id = Column(
        Integer, ForeignKey("course_valid.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    subject = relationship("SubjectModel", back_populates="classes")
    course = relationship("CourseModel")
    enrollments = relationship(
        "ClassStudentModel",
        back_populates="class_",
        cascade="all, delete-orphan",
    )
    invites = relationship(
        "ClassInviteModel",
        back_populates="class_",
        cascade="all, delete-orphan",
    )
