"""Course reference data, imported once from the official course listing."""

from sqlalchemy import Column, Integer, String

from .base import Base


class CourseModel(Base):
    __tablename__ = "course_valid"

    id = Column(Integer, primary_key=True, index=True)
    code_ies = Column(Integer, nullable=False)
    acronym_ies = Column(String(200), nullable=False)
    name_ies = Column(String(255), nullable=False)
    situation = Column(String(100), nullable=False)
    course_code = Column(Integer, unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    degree = Column(String(100), nullable=False)
    city = Column(String(150), nullable=False)
    uf = Column(String(3), nullable=False)
