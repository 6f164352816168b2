# This project was developed with assistance from AI tools.
"""Actor request/response schemas (landlords, tenants, joint obligors, avals)."""

from datetime import datetime
from decimal import Decimal

from db.enums import (
    ActorRole,
    EmploymentStatus,
    GuaranteeMethod,
    Nationality,
    ReferenceType,
    VerificationStatus,
)
from pydantic import BaseModel, ConfigDict, Field


class ActorFields(BaseModel):
    """Identity and financial fields every actor kind accepts."""

    is_company: bool = False
    first_name: str | None = Field(default=None, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    paternal_last_name: str | None = Field(default=None, max_length=100)
    maternal_last_name: str | None = Field(default=None, max_length=100)
    company_name: str | None = Field(default=None, max_length=255)
    legal_rep_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    rfc: str | None = Field(default=None, max_length=20)
    curp: str | None = Field(default=None, max_length=20)
    nationality: Nationality = Nationality.MEXICAN
    address: str | None = None
    employment_status: EmploymentStatus | None = None
    occupation: str | None = None
    employer_name: str | None = None
    monthly_income: Decimal | None = Field(default=None, ge=0)


class ActorCreate(ActorFields):
    """Actor supplied when a policy is created or guarantors are replaced."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    guarantee_method: GuaranteeMethod | None = None
    property_value: Decimal | None = Field(default=None, ge=0)
    guarantee_property_address: str | None = None


class ActorUpdate(BaseModel):
    """Partial actor update. Only fields present in the payload are written."""

    model_config = ConfigDict(extra="forbid")

    is_company: bool | None = None
    first_name: str | None = Field(default=None, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    paternal_last_name: str | None = Field(default=None, max_length=100)
    maternal_last_name: str | None = Field(default=None, max_length=100)
    company_name: str | None = Field(default=None, max_length=255)
    legal_rep_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(default=None, max_length=50)
    rfc: str | None = Field(default=None, max_length=20)
    curp: str | None = Field(default=None, max_length=20)
    nationality: Nationality | None = None
    address: str | None = None
    employment_status: EmploymentStatus | None = None
    occupation: str | None = None
    employer_name: str | None = None
    monthly_income: Decimal | None = Field(default=None, ge=0)
    # landlord
    bank_name: str | None = None
    account_holder: str | None = None
    clabe: str | None = Field(default=None, max_length=18)
    # tenant
    previous_address: str | None = None
    previous_landlord_name: str | None = None
    previous_rent_amount: Decimal | None = Field(default=None, ge=0)
    # joint obligor / aval
    guarantee_method: GuaranteeMethod | None = None
    property_value: Decimal | None = Field(default=None, ge=0)
    property_deed_number: str | None = None
    property_registry: str | None = None
    guarantee_property_address: str | None = None


class ActorResponse(BaseModel):
    """Actor as returned to staff and to the actor's own portal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    role: ActorRole
    display_name: str
    is_company: bool
    first_name: str | None = None
    middle_name: str | None = None
    paternal_last_name: str | None = None
    maternal_last_name: str | None = None
    company_name: str | None = None
    legal_rep_name: str | None = None
    email: str
    phone: str | None = None
    rfc: str | None = None
    nationality: Nationality
    address: str | None = None
    employment_status: EmploymentStatus | None = None
    occupation: str | None = None
    employer_name: str | None = None
    monthly_income: Decimal | None = None
    information_complete: bool
    completed_at: datetime | None = None
    verification_status: VerificationStatus
    verification_notes: str | None = None
    archived_at: datetime | None = None
    is_primary: bool | None = None
    guarantee_method: GuaranteeMethod | None = None


class ActorVerifyRequest(BaseModel):
    """Staff verification decision for one actor."""

    status: VerificationStatus
    notes: str | None = None


class ActorSubmitResponse(BaseModel):
    """Outcome of marking an actor's information complete."""

    actor: ActorResponse
    policy_status: str
    policy_transitioned: bool


class PortalLink(BaseModel):
    """Access link minted for one actor."""

    role: ActorRole
    actor_id: int
    display_name: str
    email: str
    url: str
    expires_at: datetime


class ReferenceCreate(BaseModel):
    """Personal or commercial reference supplied by an actor."""

    model_config = ConfigDict(extra="forbid")

    reference_type: ReferenceType = ReferenceType.PERSONAL
    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=50)
    email: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    relationship_to_actor: str | None = Field(default=None, max_length=100)


class ReferenceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    actor_role: ActorRole
    actor_id: int
    reference_type: ReferenceType
    name: str
    phone: str
    email: str | None = None
    relationship_to_actor: str | None = None
    created_at: datetime | None = None


class ReferenceListResponse(BaseModel):
    data: list[ReferenceResponse]
    count: int
