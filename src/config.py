"""Configuration module for the Evolvere backend.

This module provides centralized configuration management, including directory
paths, API server settings, session cookie policy, mail delivery and upload
limits. All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory (database file, uploads and logs for local deployments)
DATA_DIR_NAME = os.getenv("DATA_DIR_NAME", "data")
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# Uploaded materials and diplomas
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))

# Log files
LOG_DIR = DATA_DIR / "logs"

# Email templates
TEMPLATE_DIR = ROOT_DIR / "src" / "templates"

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/evolvere.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
# Default includes local development addresses. For production, set via
# CORS_ALLOWED_ORIGINS environment variable.
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# Public address of the frontend, used for links inside emails
FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

# --- Session Configuration ---

SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "evolvere_sid")

# Fixed lifetime of a login session; not extended by activity.
SESSION_TTL_MINUTES: int = int(os.getenv("SESSION_TTL_MINUTES", "120"))

# Cross-origin production deployments need SameSite=None together with Secure.
SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
SESSION_COOKIE_SAMESITE: str = os.getenv("SESSION_COOKIE_SAMESITE", "lax").lower()

# --- Mail Configuration ---

SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
SMTP_SENDER_NAME: str = os.getenv("SMTP_SENDER_NAME", "Evolvere")
SMTP_TIMEOUT: int = int(os.getenv("SMTP_TIMEOUT", "10"))

# --- Upload Configuration ---

MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))

# MIME type -> short type label stored with each material
ALLOWED_MATERIAL_TYPES: Dict[str, str] = {
    "application/pdf": "PDF",
    "application/msword": "DOC",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "application/vnd.ms-powerpoint": "PPT",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "PPTX",
    "text/plain": "TXT",
    "image/png": "PNG",
    "image/jpeg": "JPG",
}

ALLOWED_DIPLOMA_TYPES: Dict[str, str] = {"application/pdf": "PDF"}

ALLOWED_PHOTO_TYPES: Dict[str, str] = {"image/png": "PNG", "image/jpeg": "JPG"}

# --- Code Generation ---

# Maximum number of candidates drawn before a unique code is considered
# unobtainable.
MAX_CODE_ATTEMPTS: int = int(os.getenv("MAX_CODE_ATTEMPTS", "50"))

# --- Seed Administrator ---

ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_EMAIL: Optional[str] = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD: Optional[str] = os.getenv("ADMIN_PASSWORD")

# Optional CSV file with the course reference data imported at startup
COURSES_CSV: Optional[str] = os.getenv("COURSES_CSV")

# --- Logging ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
