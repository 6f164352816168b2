# This project was developed with assistance from AI tools.
"""Document validation gate.

Records a reviewer's decision on a single actor document. The decision is
independent of the owning actor's ``information_complete`` flag and of the
policy status: this module writes neither.
"""

import logging
from datetime import UTC, datetime

from db import ActorDocument
from db.enums import PerformedByType, ValidationStatus
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .activity import log_activity

logger = logging.getLogger(__name__)


class DocumentValidationError(ValueError):
    """Raised when a validation decision is malformed."""


def check_validation_request(status: ValidationStatus, rejection_reason: str | None) -> str | None:
    """Validate the decision itself, before any storage access.

    Returns the normalized rejection reason (None unless REJECTED).
    """
    status = ValidationStatus(status)
    if status == ValidationStatus.REJECTED:
        reason = (rejection_reason or "").strip()
        if not reason:
            raise DocumentValidationError("A rejection reason is required to reject a document.")
        return reason
    return None


async def validate_document(
    session: AsyncSession,
    document_id: int,
    status: ValidationStatus,
    rejection_reason: str | None,
    validator_id: str,
    *,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> ActorDocument | None:
    """Set a document's validation status.

    Returns None if the document does not exist.
    Raises DocumentValidationError for a REJECTED decision with a blank reason.
    """
    reason = check_validation_request(status, rejection_reason)
    status = ValidationStatus(status)

    stmt = select(ActorDocument).where(ActorDocument.id == document_id).with_for_update()
    result = await session.execute(stmt)
    doc = result.scalar_one_or_none()
    if doc is None:
        return None

    previous = ValidationStatus(doc.validation_status)
    doc.validation_status = status
    doc.rejection_reason = reason
    doc.validated_by = validator_id
    doc.validated_at = now or datetime.now(UTC)

    base_details = {
        "document_id": doc.id,
        "category": str(getattr(doc.category, "value", doc.category)),
        "actor_role": str(getattr(doc.actor_role, "value", doc.actor_role)),
        "actor_id": doc.actor_id,
    }

    if previous not in (ValidationStatus.PENDING, status):
        await log_activity(
            session,
            policy_id=doc.policy_id,
            action="document_validation_changed",
            description=f"Document {doc.file_name} changed from {previous.value} to {status.value}",
            details={**base_details, "from": previous.value, "to": status.value},
            performed_by_type=PerformedByType.USER,
            performed_by_id=validator_id,
            ip_address=ip_address,
        )

    details = dict(base_details)
    if reason:
        details["rejection_reason"] = reason
    await log_activity(
        session,
        policy_id=doc.policy_id,
        action=f"document_{status.value.lower()}",
        description=f"Document {doc.file_name} marked {status.value}",
        details=details,
        performed_by_type=PerformedByType.USER,
        performed_by_id=validator_id,
        ip_address=ip_address,
    )

    await session.commit()
    logger.info(
        "Document %s validation %s -> %s by %s", doc.id, previous.value, status.value, validator_id
    )
    return doc
