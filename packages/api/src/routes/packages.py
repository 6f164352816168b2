# This project was developed with assistance from AI tools.
"""Package catalogue and quote routes."""

from db import get_db
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import POLICY_ROLES, require_roles
from ..schemas.package import PackageResponse, PricingBreakdown, QuoteRequest
from ..services.pricing import PricingError, calculate_policy_pricing, get_package, list_packages

router = APIRouter()


@router.get(
    "/",
    response_model=list[PackageResponse],
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def get_packages(session: AsyncSession = Depends(get_db)) -> list[PackageResponse]:
    """Active packages, cheapest first."""
    packages = await list_packages(session)
    return [PackageResponse.model_validate(p) for p in packages]


@router.post(
    "/quote",
    response_model=PricingBreakdown,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def quote(
    body: QuoteRequest,
    session: AsyncSession = Depends(get_db),
) -> PricingBreakdown:
    """Price a prospective policy without creating it."""
    package = None
    if body.package_id is not None:
        package = await get_package(session, body.package_id)
        if package is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    try:
        return calculate_policy_pricing(
            body.rent_amount,
            package,
            tenant_percentage=body.tenant_percentage,
            landlord_percentage=body.landlord_percentage,
            include_investigation_fee=body.include_investigation_fee,
        )
    except PricingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
