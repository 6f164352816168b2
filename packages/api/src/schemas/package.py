# This project was developed with assistance from AI tools.
"""Package and pricing schemas."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PackageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    price: Decimal
    percentage: Decimal | None = None
    min_amount: Decimal | None = None


class QuoteRequest(BaseModel):
    """Price a prospective policy."""

    rent_amount: Decimal = Field(gt=0)
    package_id: int | None = None
    tenant_percentage: Decimal = Field(default=Decimal("100"), ge=0, le=100)
    landlord_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    include_investigation_fee: bool = False


class PricingBreakdown(BaseModel):
    """Full price computation for a policy quote."""

    package_name: str | None = None
    calculation_method: Literal["percentage", "flat", "none"]
    minimum_applied: bool = False
    package_price: Decimal
    investigation_fee: Decimal | None = None
    subtotal: Decimal
    iva_rate: Decimal
    iva: Decimal
    total: Decimal
    tenant_percentage: Decimal
    landlord_percentage: Decimal
    tenant_amount: Decimal
    landlord_amount: Decimal
