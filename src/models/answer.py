"""Student answers, teacher corrections and per-form results."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class AnswerFormModel(Base):
    """One row per student per answered question."""

    __tablename__ = "answers_form"
    __table_args__ = (
        UniqueConstraint(
            "form_id",
            "question_id",
            "user_id",
            name="uq_answers_form_form_question_user",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    form_id = Column(
        Integer, ForeignKey("form.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    option_id = Column(
        Integer, ForeignKey("options.id", ondelete="CASCADE"), nullable=True
    )
    open_answer = Column(Text, nullable=True)
    corrected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    question = relationship("QuestionModel")
    option = relationship("OptionModel")
    user = relationship("UserModel")


class CommentAnswerModel(Base):
    __tablename__ = "comment_answers"
    __table_args__ = (
        UniqueConstraint("answer_id", name="uq_comment_answers_answer"),
    )

    id = Column(Integer, primary_key=True, index=True)
    answer_id = Column(
        Integer, ForeignKey("answers_form.id", ondelete="CASCADE"), index=True, nullable=False
    )
    teacher_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    comment = Column(Text, nullable=True)
    points = Column(Numeric(5, 2), nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class FormResultModel(Base):
    __tablename__ = "results_form"
    __table_args__ = (
        UniqueConstraint("form_id", "student_id", name="uq_results_form_form_student"),
    )

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(
        Integer, ForeignKey("form.id", ondelete="CASCADE"), index=True, nullable=False
    )
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    points = Column(Numeric(5, 2), nullable=False, default=0)
    correct = Column(Integer, nullable=False, default=0)
    wrong = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    form = relationship("FormModel")
