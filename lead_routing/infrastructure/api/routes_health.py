"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from lead_routing.adapters.persistence.database import get_session
from lead_routing.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Check API and database connectivity."""
    if settings.store_backend.lower() == "memory":
        db_status = "not used"
    else:
        try:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            db_status = "connected"
        except Exception as e:
            db_status = f"error: {e}"

    return {
        "status": "degraded" if db_status.startswith("error") else "ok",
        "database": db_status,
        "store_backend": settings.store_backend,
        "service": "Lead Routing Engine",
    }
