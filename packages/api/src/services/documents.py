# This project was developed with assistance from AI tools.
"""Actor document upload and listing."""

import logging

from db import ActorDocument
from db.enums import ActorRole, DocumentCategory, PerformedByType, ValidationStatus
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from .activity import log_activity
from .document_requirements import CATEGORY_LABELS
from .storage import ALLOWED_CONTENT_TYPES, get_storage_service

logger = logging.getLogger(__name__)


class DocumentUploadError(Exception):
    """Raised when a document upload fails validation."""

    def __init__(self, message: str, *, too_large: bool = False):
        self.too_large = too_large
        super().__init__(message)


def validate_upload(content_type: str, file_data: bytes) -> None:
    """Check content type and size before anything is stored."""
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise DocumentUploadError(
            f"Unsupported content type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    if not file_data:
        raise DocumentUploadError("The uploaded file is empty")
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if len(file_data) > max_bytes:
        raise DocumentUploadError(
            f"File size {len(file_data)} exceeds maximum of {settings.UPLOAD_MAX_SIZE_MB}MB",
            too_large=True,
        )


async def upload_actor_document(
    session: AsyncSession,
    actor,
    *,
    category: DocumentCategory,
    filename: str,
    content_type: str,
    file_data: bytes,
    uploaded_by: str | None,
    performed_by_type: PerformedByType = PerformedByType.ACTOR,
    ip_address: str | None = None,
) -> ActorDocument:
    """Store a file for an actor and record it as PENDING validation.

    1. Validate content type and size
    2. Create ActorDocument row (to get an id for the object key)
    3. Upload to S3
    4. Record file_path, log ``document_uploaded`` and commit
    """
    validate_upload(content_type, file_data)
    role = ActorRole(actor.role)

    doc = ActorDocument(
        policy_id=actor.policy_id,
        actor_role=role,
        actor_id=actor.id,
        category=category,
        file_name=filename,
        content_type=content_type,
        file_size=len(file_data),
        uploaded_by=uploaded_by,
        validation_status=ValidationStatus.PENDING,
    )
    session.add(doc)
    await session.flush()

    storage = get_storage_service()
    object_key = storage.build_document_key(actor.policy_id, role.value, actor.id, doc.id, filename)
    await storage.upload_file(file_data, object_key, content_type)
    doc.file_path = object_key

    await log_activity(
        session,
        policy_id=actor.policy_id,
        action="document_uploaded",
        description=f"{CATEGORY_LABELS[DocumentCategory(category)]} uploaded for "
        f"{role.label} {actor.display_name}",
        details={
            "document_id": doc.id,
            "category": DocumentCategory(category).value,
            "actor_role": role.value,
            "actor_id": actor.id,
        },
        performed_by_type=performed_by_type,
        performed_by_id=uploaded_by,
        ip_address=ip_address,
    )
    await session.commit()
    await session.refresh(doc)
    logger.info("Document %s uploaded for %s #%s", doc.id, role.value, actor.id)
    return doc


async def list_actor_documents(
    session: AsyncSession, role: ActorRole, actor_id: int
) -> list[ActorDocument]:
    stmt = (
        select(ActorDocument)
        .where(ActorDocument.actor_role == role, ActorDocument.actor_id == actor_id)
        .order_by(ActorDocument.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_policy_documents(session: AsyncSession, policy_id: int) -> list[ActorDocument]:
    stmt = (
        select(ActorDocument)
        .where(ActorDocument.policy_id == policy_id)
        .order_by(ActorDocument.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
