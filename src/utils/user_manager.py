"""User management utilities.

This module provides user management functionality including user storage,
password hashing, registration code generation and credential checks.
"""

import logging
from pathlib import Path
from typing import List, Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import ALLOWED_PHOTO_TYPES
from core.database import transaction
from core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from models.user import ROLE_ADMIN, ROLE_STUDENT, UserModel
from utils import code_generator
from utils.file_storage import FileStorage, validate_upload

logger = logging.getLogger(__name__)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_BYTES = 72

PHOTO_FOLDER = "photos"


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session, storage: Optional[FileStorage] = None):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
            storage: Where profile photos are kept.
        """
        self.db = db
        self.storage = storage or FileStorage()

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    def registration_exists(self, code: str) -> bool:
        return (
            self.db.query(UserModel.id)
            .filter(UserModel.registration == code)
            .first()
            is not None
        )

    def email_exists(self, email: str) -> bool:
        return (
            self.db.query(UserModel.id)
            .filter(UserModel.email == email.lower())
            .first()
            is not None
        )

    def create_user(self, username: str, email: str, password: str) -> UserModel:
        """Create a new user with a unique registration number.

        Args:
            username: Display name.
            email: Login email, stored lower-cased.
            password: Plain text password.

        Returns:
            The created UserModel.

        Raises:
            ConflictError: If the email is already registered.
        """
        email = email.lower()
        if self.email_exists(email):
            raise ConflictError("Email já existe.")

        password_hash = self.hash_password(password)

        # The unique constraint on registration backs the existence check;
        # a concurrent insert of the same number is retried with a new one.
        for _ in range(3):
            registration = code_generator.generate_unique(
                code_generator.generate_registration_code,
                self.registration_exists,
            )
            model = UserModel(
                username=username.strip(),
                email=email,
                password_hash=password_hash,
                registration=registration,
            )
            try:
                with transaction(self.db):
                    self.db.add(model)
            except IntegrityError:
                if self.email_exists(email):
                    raise ConflictError("Email já existe.")
                logger.warning("Registration %s taken concurrently, retrying", registration)
                continue
            self.db.refresh(model)
            logger.info("Created user %s with registration %s", model.id, registration)
            return model
        raise ConflictError("Não foi possível concluir o cadastro, tente novamente.")

    def create_admin(self, username: str, email: str, password: str) -> UserModel:
        """Create a seeded administrator if the email is not taken yet."""
        existing = self.get_user_by_email(email)
        if existing:
            return existing
        model = UserModel(
            username=username,
            email=email.lower(),
            password_hash=self.hash_password(password),
            registration="admin",
            role=ROLE_ADMIN,
        )
        with transaction(self.db):
            self.db.add(model)
        self.db.refresh(model)
        logger.info("Seeded administrator %s", email)
        return model

    def authenticate(self, email: str, password: str) -> UserModel:
        """Return the user for valid credentials.

        Raises:
            UnauthorizedError: If the email is unknown or the password wrong.
        """
        user = self.get_user_by_email(email)
        if user is None or not self.verify_password(password, user.password_hash):
            raise UnauthorizedError("Email ou senha incorretos.")
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_user_by_id(user_id)
        if not self.verify_password(current_password, user.password_hash):
            raise UnauthorizedError("Senha atual incorreta.")
        with transaction(self.db):
            user.password_hash = self.hash_password(new_password)
        logger.info("Password changed for user %s", user_id)

    def get_user_by_email(self, email: str) -> Optional[UserModel]:
        return self.db.query(UserModel).filter(UserModel.email == email.lower()).first()

    def get_user_by_id(self, user_id: int) -> UserModel:
        """Get a user by ID.

        Raises:
            NotFoundError: If no user has this ID.
        """
        model = self.db.get(UserModel, user_id)
        if model is None:
            raise NotFoundError("Usuário não encontrado.")
        return model

    def list_users(self, role: Optional[int] = None) -> List[UserModel]:
        query = self.db.query(UserModel)
        if role is not None:
            query = query.filter(UserModel.role == role)
        return query.order_by(UserModel.username).all()

    def list_students(self, course_id: Optional[int] = None) -> List[UserModel]:
        query = self.db.query(UserModel).filter(UserModel.role == ROLE_STUDENT)
        if course_id is not None:
            query = query.filter(UserModel.course_id == course_id)
        return query.order_by(UserModel.username).all()

    def delete_student(self, student_id: int, course_id: Optional[int] = None) -> None:
        """Delete a student account with its enrollments, answers and results.

        Raises:
            NotFoundError: No student with this id, or not in ``course_id``.
        """
        model = self.db.get(UserModel, student_id)
        if model is None or model.role != ROLE_STUDENT:
            raise NotFoundError("Aluno não encontrado.")
        if course_id is not None and model.course_id != course_id:
            raise NotFoundError("Aluno não encontrado.")
        photo = model.photo
        with transaction(self.db):
            self.db.delete(model)
        if photo:
            self.storage.delete(photo)
        logger.info("Deleted student %s", student_id)

    # --- Photo ---

    def set_photo(
        self, user_id: int, content: bytes, filename: str, content_type: str
    ) -> UserModel:
        """Store a new profile photo and drop the previous file.

        Raises:
            ValidationError: Empty, oversized or non-image upload.
        """
        validate_upload(content, content_type, ALLOWED_PHOTO_TYPES)
        user = self.get_user_by_id(user_id)
        previous = user.photo
        stored = self.storage.save(content, filename, folder=PHOTO_FOLDER)
        try:
            with transaction(self.db):
                user.photo = stored
        except Exception:
            self.storage.delete(stored)
            raise
        if previous:
            self.storage.delete(previous)
        logger.info("Updated photo of user %s", user_id)
        return user

    def get_photo(self, user_id: int) -> Path:
        user = self.get_user_by_id(user_id)
        if not user.photo:
            raise NotFoundError("Foto não encontrada.")
        return self.storage.resolve(user.photo)

    def remove_photo(self, user_id: int) -> None:
        user = self.get_user_by_id(user_id)
        if not user.photo:
            raise NotFoundError("Foto não encontrada.")
        previous = user.photo
        with transaction(self.db):
            user.photo = None
        self.storage.delete(previous)
        logger.info("Removed photo of user %s", user_id)
