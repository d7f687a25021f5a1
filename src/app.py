"""Main FastAPI application module.

This module initializes the FastAPI application, registers all route
handlers and maps application errors to JSON responses.
"""

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging_config import setup_logging
from config import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    API_HOST,
    API_PORT,
    CORS_ALLOWED_ORIGINS,
    COURSES_CSV,
)
from core.database import SessionLocal, init_db
from core.exceptions import EvolvereError
from api.routes import (
    account,
    auth,
    class_route,
    course,
    enrollment,
    form,
    material,
    performance,
    subject,
)
from utils.course_manager import CourseManager
from utils.user_manager import UserManager

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

API_TITLE = "Evolvere API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Backend API service for the Evolvere academic management platform."

# Initialize FastAPI application
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
)

# Configure CORS middleware; session cookies need credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(account.router)
app.include_router(course.router)
app.include_router(subject.router)
app.include_router(class_route.router)
app.include_router(enrollment.router)
app.include_router(form.router)
app.include_router(performance.router)
app.include_router(material.router)


def _error_body(message: str, error: str) -> dict:
    return {"success": False, "message": message, "error": error}


@app.exception_handler(EvolvereError)
def handle_app_error(request: Request, exc: EvolvereError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, type(exc).__name__),
    )


@app.exception_handler(StarletteHTTPException)
def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTPException"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Dados inválidos.") if errors else "Dados inválidos."
    body = _error_body(message, "ValidationError")
    body["details"] = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in errors
    ]
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body("Erro interno no servidor.", "InternalError"),
    )


@app.on_event("startup")
def startup_tasks() -> None:
    """Create tables, then seed the administrator and the course catalogue."""
    init_db()
    db = SessionLocal()
    try:
        if ADMIN_EMAIL and ADMIN_PASSWORD:
            UserManager(db).create_admin(ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD)
        if COURSES_CSV:
            path = Path(COURSES_CSV)
            if path.is_file():
                CourseManager(db).import_csv(path)
            else:
                logger.warning("COURSES_CSV points to a missing file: %s", path)
    finally:
        db.close()


@app.get("/", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "description": API_DESCRIPTION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    logger.info("Starting Evolvere API at %s (docs at %s/docs)", server_url, server_url)
    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
