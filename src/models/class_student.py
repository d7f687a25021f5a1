from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class ClassStudentModel(Base):
    """Enrollment of a student in a class; the composite key keeps it unique."""

    __tablename__ = "class_student"

    class_id = Column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True
    )
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at = Column(DateTime, server_default=func.now())

    class_ = relationship("ClassModel", back_populates="enrollments")
    student = relationship("UserModel")
