# This project was developed with assistance from AI tools.
"""Policy request/response schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import GuarantorType, InvestigationVerdict, PolicyStatus
from pydantic import BaseModel, ConfigDict, Field, model_validator

from . import Pagination
from .actor import ActorCreate, ActorResponse


class PolicyCreate(BaseModel):
    """Create a policy together with its initial actors."""

    policy_number: str | None = Field(default=None, max_length=50)
    rent_amount: Decimal = Field(gt=0)
    guarantor_type: GuarantorType = GuarantorType.NONE
    property_address: str | None = None
    contract_length_months: int | None = Field(default=None, ge=1, le=120)
    package_id: int | None = None
    tenant_percentage: Decimal = Field(default=Decimal("100"), ge=0, le=100)
    landlord_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    landlord: ActorCreate
    additional_landlords: list[ActorCreate] = []
    tenant: ActorCreate
    joint_obligors: list[ActorCreate] = []
    avals: list[ActorCreate] = []

    @model_validator(mode="after")
    def _split_sums_to_100(self):
        if self.tenant_percentage + self.landlord_percentage != 100:
            raise ValueError("tenant_percentage and landlord_percentage must sum to 100")
        return self


class InvestigationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    verdict: InvestigationVerdict | None = None
    notes: str | None = None
    completed_by: str | None = None
    completed_at: datetime | None = None


class PolicyResponse(BaseModel):
    """Single policy response with its actors."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_number: str
    status: PolicyStatus
    guarantor_type: GuarantorType
    rent_amount: Decimal
    property_address: str | None = None
    contract_length_months: int
    package_id: int | None = None
    tenant_percentage: Decimal
    landlord_percentage: Decimal
    total_price: Decimal | None = None
    created_by: str
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    activated_at: datetime | None = None
    expires_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    landlords: list[ActorResponse] = []
    tenant: ActorResponse | None = None
    joint_obligors: list[ActorResponse] = []
    avals: list[ActorResponse] = []
    investigation: InvestigationSummary | None = None


class PolicySummary(BaseModel):
    """Policy row for list views (no nested actors)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_number: str
    status: PolicyStatus
    guarantor_type: GuarantorType
    rent_amount: Decimal
    property_address: str | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class PolicyListResponse(BaseModel):
    """Paginated list of policies."""

    data: list[PolicySummary]
    pagination: Pagination


class TransitionRequest(BaseModel):
    """Request a lifecycle status change."""

    status: PolicyStatus
    reason: str | None = None
    notes: str | None = None


class ForceTransitionRequest(BaseModel):
    """Administrative status override. A reason is mandatory."""

    status: PolicyStatus
    reason: str = Field(min_length=1)


class GuarantorTypeChangeRequest(BaseModel):
    """Replace the policy's guarantors with a new guarantor type."""

    guarantor_type: GuarantorType
    reason: str | None = None
    joint_obligors: list[ActorCreate] = []
    avals: list[ActorCreate] = []


class InvestigationCompleteRequest(BaseModel):
    """Record the investigation verdict."""

    verdict: InvestigationVerdict
    notes: str | None = None
    reason: str | None = None


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    file_path: str
    is_current: bool
    uploaded_by: str | None = None
    signed_at: datetime | None = None
    created_at: datetime
