# main.py

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.exceptions import (
    AuthServiceError,
    auth_error_handler,
    database_exception_handler,
    general_exception_handler,
    validation_exception_handler,
)
from app.core.admin_security import hash_password
from app.db.mongodb import close_mongo_connection, ensure_indexes, get_database
from app.services.admin_service import AdminService

from app.api.v1.routes.auth_route import router as auth_router
from app.api.v1.routes.trusted_ip_route import router as trusted_ip_router
from app.api.v1.routes.admin_routes import router as admin_router

setup_logging()
logger = logging.getLogger(__name__)


# -----------------------------
# FASTAPI APP
# -----------------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Magic-link and trusted-IP authentication for Dinar Exchange"
)

# -----------------------------
# CORS MIDDLEWARE
# -----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# EXCEPTION HANDLERS
# -----------------------------
app.add_exception_handler(AuthServiceError, auth_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(PyMongoError, database_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# -----------------------------
# ROUTERS
# -----------------------------
app.include_router(auth_router, prefix="/api/v1/auth")
app.include_router(trusted_ip_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])


async def seed_default_admin(db) -> None:
    """Create the bootstrap admin when DEFAULT_ADMIN_EMAIL/PASSWORD are configured."""
    if not settings.DEFAULT_ADMIN_EMAIL or not settings.DEFAULT_ADMIN_PASSWORD:
        return

    existing_admin = await AdminService.get_by_email(db, settings.DEFAULT_ADMIN_EMAIL)
    if existing_admin:
        logger.info("Default admin already exists")
        return

    await AdminService.create_admin(
        db,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        first_name="Admin",
        last_name="User",
        role="admin",
    )
    logger.info(f"Default admin account created ({settings.DEFAULT_ADMIN_EMAIL})")


# -----------------------------
# STARTUP EVENT
# -----------------------------
@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENV})")
    db = await get_database()

    await ensure_indexes(db)
    logger.info("Indexes created")

    await seed_default_admin(db)


# -----------------------------
# SHUTDOWN EVENT
# -----------------------------
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down API")
    await close_mongo_connection()


# -----------------------------
# ROOT ENDPOINT
# -----------------------------
@app.get("/", tags=["Health"])
def root():
    return {
        "message": f"{settings.PROJECT_NAME} running",
        "version": "1.0.0",
        "docs": "/docs"
    }
