"""
Bricks Attendance Backend - Main Application Entry Point
"""
import logging
from datetime import date
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.api.router import api_router
from app.core.config import settings
from app.core.constants import INITIAL_ADMIN_EMP_CODE
from app.core.errors import (
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from app.core.logging import setup_logging
from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.employee import Employee, Role

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


app = FastAPI(
    title="Bricks Attendance Backend",
    description="Employee attendance: clock in/out, breaks, records and payroll summaries",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL and timezone at startup so they can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))
    logger.info("Organization timezone: %s, standard start: %s", settings.ORG_TIMEZONE, settings.STANDARD_START_TIME)


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial admin user if no admin exists yet.
    This ensures the system always has at least one account that can manage records.
    """
    db = SessionLocal()
    try:
        admin_exists = db.query(Employee).filter(
            (Employee.emp_code == INITIAL_ADMIN_EMP_CODE) |
            (Employee.role == Role.ADMIN.value)
        ).first()
        if admin_exists:
            logger.info("Admin user already exists, skipping initial bootstrap")
            return

        logger.info("No admin user found, creating initial admin...")
        db.add(Employee(
            emp_code=INITIAL_ADMIN_EMP_CODE,
            name="System Administrator",
            department="Administration",
            position="Administrator",
            role=Role.ADMIN.value,
            password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            join_date=date.today(),
            active=True,
        ))
        db.commit()

        logger.info("Initial admin user created successfully")
        logger.info("Employee Code: %s", INITIAL_ADMIN_EMP_CODE)
        logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    except OperationalError as e:
        db.rollback()
        # tables may not exist yet before `alembic upgrade head`
        if "no such table" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error during initial admin bootstrap: %s", e)
    finally:
        db.close()
