# This project was developed with assistance from AI tools.
"""Actor document request/response schemas."""

from datetime import datetime

from db.enums import ActorRole, DocumentCategory, ValidationStatus
from pydantic import BaseModel, ConfigDict


class ActorDocumentResponse(BaseModel):
    """Document metadata response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    actor_role: ActorRole
    actor_id: int
    category: DocumentCategory
    file_name: str
    content_type: str | None = None
    file_size: int | None = None
    uploaded_by: str | None = None
    validation_status: ValidationStatus
    rejection_reason: str | None = None
    validated_by: str | None = None
    validated_at: datetime | None = None
    created_at: datetime


class ActorDocumentListResponse(BaseModel):
    data: list[ActorDocumentResponse]
    count: int


class DocumentValidationRequest(BaseModel):
    """Reviewer decision on one document. REJECTED requires a reason."""

    status: ValidationStatus
    rejection_reason: str | None = None


class DocumentRequirementItem(BaseModel):
    """One row of an actor's document checklist."""

    category: DocumentCategory
    label: str
    required: bool
    uploaded: bool = False
    validation_status: ValidationStatus | None = None


class ActorDocumentStatus(BaseModel):
    """Checklist of required/optional documents for a single actor."""

    role: ActorRole
    actor_id: int
    display_name: str
    requirements: list[DocumentRequirementItem]
    all_required_uploaded: bool
    all_required_approved: bool
