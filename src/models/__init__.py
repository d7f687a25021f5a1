"""ORM models, imported here so Base.metadata knows every table."""

from .base import Base
from .user import UserModel
from .user_session import UserSessionModel
from .course import CourseModel
from .professional_request import ProfessionalRequestModel
from .subject import SubjectModel
from .class_model import ClassModel
from .class_student import ClassStudentModel
from .class_invite import ClassInviteModel
from .form import FormModel, QuestionModel, OptionModel
from .answer import AnswerFormModel, CommentAnswerModel, FormResultModel
from .material import MaterialModel

__all__ = [
    "Base",
    "UserModel",
    "UserSessionModel",
    "CourseModel",
    "ProfessionalRequestModel",
    "SubjectModel",
    "ClassModel",
    "ClassStudentModel",
    "ClassInviteModel",
    "FormModel",
    "QuestionModel",
    "OptionModel",
    "AnswerFormModel",
    "CommentAnswerModel",
    "FormResultModel",
    "MaterialModel",
]
