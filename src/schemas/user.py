"""User and authentication schema definitions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("As senhas não coincidem.")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)


class User(BaseModel):
    """Public view of a user; never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    registration: Optional[str] = None
    role: Optional[int] = None
    status: int = 1
    course_id: Optional[int] = None
    photo: Optional[str] = None
    created_at: Optional[datetime] = None


class CurrentUserResponse(BaseModel):
    user: User


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    user: User
