"""Custom exception classes for the Evolvere backend.

This module defines application-specific exceptions following Google Python
Style Guide. Every exception carries the HTTP status code it maps to, so the
API layer can translate it without knowing each concrete type.
"""


class EvolvereError(Exception):
    """Base exception for all Evolvere errors."""

    status_code = 500
    default_message = "Erro interno no servidor."

    def __init__(self, message: str = None):
        """Initialize the exception.

        Args:
            message: Human readable message returned to the client.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(EvolvereError):
    """Raised when data validation fails."""

    status_code = 422
    default_message = "Dados inválidos."


class NotFoundError(EvolvereError):
    """Raised when a requested entity does not exist."""

    status_code = 404
    default_message = "Registro não encontrado."


class ConflictError(EvolvereError):
    """Raised when an operation would duplicate existing data."""

    status_code = 409
    default_message = "Registro já existe."


class UnauthorizedError(EvolvereError):
    """Raised when the request has no valid session."""

    status_code = 401
    default_message = "Usuário não autenticado."


class ForbiddenError(EvolvereError):
    """Raised when the current user's role does not allow the operation."""

    status_code = 403
    default_message = "Acesso negado."


class InternalError(EvolvereError):
    """Raised on unexpected failures that are not the client's fault."""

    pass


class InviteNotFoundError(NotFoundError):
    """Raised when an invite code does not exist."""

    def __init__(self, code: str):
        self.code = code
        super().__init__("Código de convite inválido.")


class InviteExpiredError(EvolvereError):
    """Raised when an invite is redeemed at or after its expiry."""

    status_code = 410

    def __init__(self, code: str):
        self.code = code
        super().__init__("Código de convite expirado.")


class UseLimitReachedError(ConflictError):
    """Raised when an invite has no remaining uses."""

    def __init__(self, code: str):
        self.code = code
        super().__init__("Código de convite atingiu o limite de usos.")


class AlreadyEnrolledError(ConflictError):
    """Raised when a student is already enrolled in the class."""

    def __init__(self, class_id: int, student_id: int):
        self.class_id = class_id
        self.student_id = student_id
        super().__init__("Você já está matriculado nesta turma.")


class ClassFullError(ConflictError):
    """Raised when a class has reached its capacity."""

    def __init__(self, class_id: int):
        self.class_id = class_id
        super().__init__("A turma atingiu a capacidade máxima.")


class FormAlreadyAnsweredError(ConflictError):
    """Raised when a student submits a form a second time."""

    def __init__(self, form_id: int, user_id: int):
        self.form_id = form_id
        self.user_id = user_id
        super().__init__("Formulário já respondido.")
