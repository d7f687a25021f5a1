"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base

ROLE_ADMIN = 1
ROLE_COORDINATOR = 2
ROLE_TEACHER = 3
ROLE_STUDENT = 4

ROLE_NAMES = {
    ROLE_ADMIN: "Administrador",
    ROLE_COORDINATOR: "Coordenador",
    ROLE_TEACHER: "Professor",
    ROLE_STUDENT: "Aluno",
}


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    registration = Column(String(255), unique=True, nullable=True)  # 8 digits, or 'admin'
    role = Column(Integer, nullable=True)  # NULL until a role is assigned
    status = Column(Integer, nullable=False, default=1)
    course_id = Column(Integer, ForeignKey("course_valid.id"), nullable=True, index=True)
    photo = Column(String(200), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    course = relationship("CourseModel")

    @property
    def effective_role(self) -> int:
        """Role used for authorization; unassigned users act as students."""
        if self.registration == "admin":
            return ROLE_ADMIN
        return self.role if self.role is not None else ROLE_STUDENT
