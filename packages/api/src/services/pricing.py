# This project was developed with assistance from AI tools.
"""Package pricing and policy quote calculation."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from db import Package
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.package import PricingBreakdown

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_HUNDRED = Decimal("100")


class PricingError(ValueError):
    """Raised when quote inputs are inconsistent."""


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def _percentage_based(package) -> bool:
    return package.percentage is not None and Decimal(str(package.percentage)) > 0


def _percentage_price(rent_amount: Decimal, package) -> Decimal:
    return Decimal(str(rent_amount)) * Decimal(str(package.percentage)) / _HUNDRED


def minimum_applies(rent_amount: Decimal, package) -> bool:
    """True when a percentage package falls below its floor for this rent."""
    if not _percentage_based(package) or not package.min_amount:
        return False
    return _percentage_price(rent_amount, package) < Decimal(str(package.min_amount))


def calculate_package_price(rent_amount: Decimal, package) -> Decimal:
    """Price of a package for a given monthly rent.

    Percentage packages charge that percentage of rent, rounded to cents,
    never less than ``min_amount``. Other packages charge their flat price.
    """
    if _percentage_based(package):
        if minimum_applies(rent_amount, package):
            return _money(package.min_amount)
        return _money(_percentage_price(rent_amount, package))
    return _money(package.price)


def validate_percentage_split(tenant_percentage, landlord_percentage) -> None:
    total = Decimal(str(tenant_percentage)) + Decimal(str(landlord_percentage))
    if abs(total - _HUNDRED) >= _CENTS:
        raise PricingError("Tenant and landlord percentages must sum to 100%")


def calculate_policy_pricing(
    rent_amount: Decimal,
    package=None,
    *,
    tenant_percentage: Decimal = _HUNDRED,
    landlord_percentage: Decimal = Decimal("0"),
    include_investigation_fee: bool = False,
) -> PricingBreakdown:
    """Full quote: package price, optional investigation fee, IVA and payer split."""
    validate_percentage_split(tenant_percentage, landlord_percentage)

    investigation_fee = (
        _money(settings.INVESTIGATION_FEE) if include_investigation_fee else Decimal("0.00")
    )
    if package is not None:
        package_price = calculate_package_price(rent_amount, package)
        method = "percentage" if _percentage_based(package) else "flat"
        minimum = minimum_applies(rent_amount, package)
        package_name = package.name
    else:
        package_price = Decimal("0.00")
        method = "none"
        minimum = False
        package_name = None

    iva_rate = Decimal(str(settings.IVA_RATE))
    subtotal = package_price + investigation_fee
    iva = _money(subtotal * iva_rate)
    total = subtotal + iva

    tenant_percentage = Decimal(str(tenant_percentage))
    landlord_percentage = Decimal(str(landlord_percentage))

    return PricingBreakdown(
        package_name=package_name,
        calculation_method=method,
        minimum_applied=minimum,
        package_price=package_price,
        investigation_fee=investigation_fee if include_investigation_fee else None,
        subtotal=subtotal,
        iva_rate=iva_rate,
        iva=iva,
        total=total,
        tenant_percentage=tenant_percentage,
        landlord_percentage=landlord_percentage,
        tenant_amount=_money(total * tenant_percentage / _HUNDRED),
        landlord_amount=_money(total * landlord_percentage / _HUNDRED),
    )


async def list_packages(session: AsyncSession) -> list[Package]:
    """Active packages, cheapest first."""
    stmt = select(Package).where(Package.is_active.is_(True)).order_by(Package.price.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_package(session: AsyncSession, package_id: int) -> Package | None:
    stmt = select(Package).where(Package.id == package_id, Package.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
