"""Professional account request model.

A teacher or coordinator asks for their role by submitting the access code of
the course they work for; an admin or the course coordinator approves it.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class ProfessionalRequestModel(Base):
    __tablename__ = "validate_professionals"

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        index=True,
        nullable=False,
    )
    institution = Column(String(255), nullable=False)
    access_code = Column(String(200), nullable=False, index=True)
    diploma = Column(String(255), nullable=True)
    role = Column(Integer, nullable=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    professional = relationship("UserModel")
