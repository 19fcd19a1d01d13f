"""Health check endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.database import get_db, get_global_db
from core.config import get_settings
from schemas.common import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    global_db: AsyncSession = Depends(get_global_db),
):
    """Check system health."""
    settings = get_settings()
    services = {"api": "ok"}
    
    for name, session in (("database", db), ("global_database", global_db)):
        try:
            await session.execute(text("SELECT 1"))
            services[name] = "ok"
        except SQLAlchemyError:
            services[name] = "error"
    
    return HealthResponse(
        status="ok" if all(v == "ok" for v in services.values()) else "degraded",
        version=settings.VERSION,
        services=services,
    )
