#app/api/endpoints/metrics.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func
from sqlmodel import select
import redis.asyncio as redis
import time
import socket
from loguru import logger

# Config & Deps
from app.core.config import settings
from app.api.deps import get_db_session, require_campus_oversight, require_super_admin
from app.core.database import test_connection

# Models
from app.models.user import User, UserRole
from app.models.publication import Publication
from app.models.user_log import UserLog
from app.schemas.audit import UserLogRead

router = APIRouter(
    prefix="/api/metrics",
    tags=["System & Metrics"]
)

# Track when the module is loaded for uptime calculation
START_TIME = time.time()

# ===================================================================
# 1. SERVICE HEALTH (public)
# ===================================================================
@router.get("/health")
async def system_health():
    uptime_seconds = int(time.time() - START_TIME)

    try:
        await test_connection()
        db_status = "Connected"
    except Exception:
        logger.exception("Health check: database unreachable")
        db_status = "Error"

    smtp_status = "Not Configured"
    if settings.SMTP_HOST:
        try:
            sock = socket.create_connection((settings.SMTP_HOST, settings.SMTP_PORT), timeout=2)
            sock.close()
            smtp_status = "Connected"
        except OSError:
            smtp_status = "Error"

    return {
        "status": "Online",
        "uptime_seconds": uptime_seconds,
        "database": db_status,
        "smtp_server": smtp_status,
        "environment": settings.ENV,
    }


# ===================================================================
# 2. DASHBOARD STATS (super / campus admin)
# ===================================================================
@router.get("/dashboard-stats")
async def get_dashboard_stats(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_campus_oversight),
):
    # Campus admins only count their own college
    college = current_user.college if current_user.role == UserRole.CampusAdmin else None

    users_query = select(User.role, func.count(User.id)).group_by(User.role)
    papers_query = select(Publication.kind, func.count(Publication.id)).group_by(Publication.kind)
    logs_query = select(UserLog)
    if college:
        users_query = users_query.where(User.college == college)
        papers_query = papers_query.where(Publication.college == college)
        logs_query = logs_query.where(UserLog.target_college == college)

    users_by_role = {
        (role.value if isinstance(role, UserRole) else str(role)): count
        for role, count in (await session.execute(users_query)).all()
    }
    papers_by_kind = {
        (kind.value if hasattr(kind, "value") else str(kind)): count
        for kind, count in (await session.execute(papers_query)).all()
    }
    recent_logs = (await session.execute(
        logs_query.order_by(UserLog.timestamp.desc()).limit(5)
    )).scalars().all()

    return {
        "metrics": {
            "total_users": sum(users_by_role.values()),
            "users_by_role": users_by_role,
            "total_publications": sum(papers_by_kind.values()),
            "publications_by_kind": papers_by_kind,
        },
        "recent_activity": [UserLogRead.model_validate(log) for log in recent_logs],
    }


# ===================================================================
# 3. REDIS / RATE LIMIT STATS (super admin)
# ===================================================================
@router.get("/redis-stats")
async def get_redis_statistics(
    _: User = Depends(require_super_admin),
):
    if not settings.REDIS_URL:
        return {"status": "Disabled", "message": "Redis is not configured."}

    client = None
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=2
        )

        info = await client.info()
        active_limits = []
        async for key in client.scan_iter(match="LIMITER/*", count=100):
            active_limits.append(key)
            if len(active_limits) >= 20:
                break

        return {
            "status": "Online",
            "redis_version": info.get("redis_version"),
            "connected_clients": info.get("connected_clients"),
            "used_memory": info.get("used_memory_human"),
            "total_keys": await client.dbsize(),
            "active_rate_limit_windows": len(active_limits),
        }

    except redis.RedisError as e:
        logger.warning(f"Redis stats unavailable: {e}")
        return {"status": "Offline", "detail": "Redis server unreachable."}
    finally:
        if client:
            await client.aclose()
