# This project was developed with assistance from AI tools.
"""Health check route."""

from db import DatabaseService, get_db_service
from fastapi import APIRouter, Depends

from ..core.config import settings
from ..schemas.health import HealthItem

router = APIRouter()


@router.get("/", response_model=list[HealthItem])
async def health_check(db_service: DatabaseService = Depends(get_db_service)) -> list[HealthItem]:
    """API and database health."""
    db_health = await db_service.health_check()
    return [
        HealthItem(
            name="API",
            status="healthy",
            message=f"{settings.APP_NAME} is running",
            version=settings.APP_VERSION,
        ),
        HealthItem(**db_health),
    ]
