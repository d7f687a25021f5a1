"""Quiz form models: a form owns ordered questions, each owning ordered options."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base

FORM_STATUS_OPEN = 1
FORM_STATUS_GRADED = 2

QUESTION_MULTIPLE_CHOICE = "multiple_choice"
QUESTION_TRUE_FALSE = "true_false"
QUESTION_OPEN = "open"


class FormModel(Base):
    __tablename__ = "form"
    __table_args__ = (
        UniqueConstraint("title", "class_id", name="uq_form_title_class"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    description = Column(String(255), nullable=True)
    created_by = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    subject_id = Column(
        Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # NULL: the form applies to every class of the subject
    class_id = Column(
        Integer, ForeignKey("classes.id", ondelete="CASCADE"), index=True, nullable=True
    )
    total_duration = Column(Integer, nullable=False, default=0)
    deadline = Column(DateTime, nullable=False, index=True)
    status = Column(Integer, nullable=False, default=FORM_STATUS_OPEN)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    subject = relationship("SubjectModel")
    questions = relationship(
        "QuestionModel",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="QuestionModel.position",
    )


class QuestionModel(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(
        Integer, ForeignKey("form.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position = Column(Integer, nullable=False, default=0)
    text = Column(Text, nullable=False)
    points = Column(Numeric(5, 2), nullable=False, default=0)
    type = Column(String(20), nullable=False)

    form = relationship("FormModel", back_populates="questions")
    options = relationship(
        "OptionModel",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="OptionModel.position",
    )

    @property
    def is_open(self) -> bool:
        return self.type == QUESTION_OPEN


class OptionModel(Base):
    __tablename__ = "options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position = Column(Integer, nullable=False, default=0)
    text = Column(String(255), nullable=False)
    correct = Column(Boolean, nullable=False, default=False)

    question = relationship("QuestionModel", back_populates="options")
