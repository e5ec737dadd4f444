# app/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import sys
import time
import psutil

# Import your core modules
from app.core.database import test_connection, init_db, AsyncSessionLocal
from app.core.config import settings
from app.core.rate_limiter import limiter
from app.services.auth_service import get_user_by_email, create_user
from app.models.user import UserRole

# Routers
from app.api.endpoints import (
    auth as auth_router,
    users as users_router,
    scope as scope_router,
    publications as publications_router,
    settings as settings_router,
    metrics as metrics_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="SRM Research Portal Backend",
    version="1.0.0",
    description="Backend service for the SRM research publication portal.",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Global variables for metrics
START_TIME = time.time()
DB_STATUS = "Connecting..."  # Initial state


# ------------------------------------------------------------
# METRICS API
# ------------------------------------------------------------
@app.get("/api/metrics", tags=["System"])
async def metrics():
    # 1. System Stats
    uptime_seconds = int(time.time() - START_TIME)
    cpu_usage = psutil.cpu_percent(interval=None)
    ram_usage = psutil.virtual_memory().percent
    try:
        disk_usage = psutil.disk_usage('/').percent
    except OSError:
        disk_usage = 0

    # 2. Database Health & Latency Check (Real-time)
    db_start = time.time()
    db_latency = 0
    try:
        await test_connection()
        current_db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except Exception:
        logger.exception("Metrics: database ping failed")
        current_db_status = "Error"

    return {
        "status": "Online",
        "version": app.version,
        "cpu": cpu_usage,
        "ram": ram_usage,
        "disk": disk_usage,
        "uptime": uptime_seconds,
        "database": current_db_status,
        "db_latency": db_latency,
    }


# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "*"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(scope_router.router)
app.include_router(publications_router.router)
app.include_router(settings_router.router)
app.include_router(metrics_router.router)


# ------------------------------------------------------------
# SUPER ADMIN SEED
# ------------------------------------------------------------
async def seed_super_admin():
    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.warning("Missing Super Admin credentials in settings.")
        return

    async with AsyncSessionLocal() as session:
        existing = await get_user_by_email(session, settings.SUPER_ADMIN_EMAIL)
        if existing:
            logger.info("Super Admin already exists. Skipping.")
            return

        logger.info(f"Seeding Super Admin: {settings.SUPER_ADMIN_EMAIL}")
        await create_user(
            session=session,
            full_name=settings.SUPER_ADMIN_NAME or "Super Admin",
            email=settings.SUPER_ADMIN_EMAIL,
            password=settings.SUPER_ADMIN_PASSWORD,
            role=UserRole.SuperAdmin,
        )
        logger.success("Super Admin created successfully.")


# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    global DB_STATUS
    logger.info("Starting SRM Research Portal Backend...")

    # 1) Database connection test
    try:
        await test_connection()
        DB_STATUS = "Connected"
        logger.success("Database connection established.")
    except Exception:
        DB_STATUS = "Error"
        logger.exception("Startup aborted: Database connection failed.")
        return

    # 2) Initialize database tables
    await init_db()
    logger.success("Database tables ready.")

    # 3) Seed Super Admin
    try:
        await seed_super_admin()
    except Exception:
        logger.exception("Super Admin seeding failed.")

    logger.success("Backend startup completed successfully.")


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "SRM Research Portal Backend",
        "version": app.version,
        "database": DB_STATUS,
    }
