# This project was developed with assistance from AI tools.
"""Admin endpoints for scheduled lifecycle jobs."""

from datetime import datetime

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import require_roles
from ..schemas.admin import ExpirePoliciesResponse
from ..services.lifecycle import expire_policies

router = APIRouter()


@router.post(
    "/expire-policies",
    response_model=ExpirePoliciesResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def run_expiration(
    as_of: datetime | None = None,
    session: AsyncSession = Depends(get_db),
) -> ExpirePoliciesResponse:
    """Expire every ACTIVE policy whose term has ended.

    Meant to be called by a scheduler; ``as_of`` overrides the clock.
    """
    expired = await expire_policies(session, as_of)
    await session.commit()
    return ExpirePoliciesResponse(count=len(expired), policy_ids=expired)
