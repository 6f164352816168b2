# This project was developed with assistance from AI tools.
"""Document review routes: policy document listing and validation decisions."""

import logging

from db import ActorDocument, Policy, get_db
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import POLICY_ROLES, STAFF_ROLES, CurrentUser, client_ip, require_roles
from ..schemas.document import (
    ActorDocumentListResponse,
    ActorDocumentResponse,
    DocumentValidationRequest,
)
from ..services import documents as doc_service
from ..services.document_validation import (
    DocumentValidationError,
    check_validation_request,
    validate_document,
)
from ..services.policy import get_policy
from ..services.scope import apply_data_scope
from ..services.storage import get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/policies/{policy_id}/documents",
    response_model=ActorDocumentListResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def list_policy_documents(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentListResponse:
    """Every actor document on a policy, including archived actors' files."""
    if await get_policy(session, user, policy_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Policy not found")
    documents = await doc_service.list_policy_documents(session, policy_id)
    return ActorDocumentListResponse(
        data=[ActorDocumentResponse.model_validate(d) for d in documents],
        count=len(documents),
    )


async def _scoped_document(session: AsyncSession, user, document_id: int):
    stmt = select(ActorDocument).where(ActorDocument.id == document_id)
    stmt = apply_data_scope(
        stmt, user.data_scope, user, join_to_policy=ActorDocument.policy_id == Policy.id
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


@router.get(
    "/documents/{document_id}/download",
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def get_document_download_url(
    document_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> dict:
    """Presigned download URL for a document's file."""
    doc = await _scoped_document(session, user, document_id)
    if doc is None or not doc.file_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    url = await get_storage_service().get_download_url(doc.file_path)
    return {"document_id": doc.id, "url": url}


@router.post(
    "/documents/{document_id}/validation",
    response_model=ActorDocumentResponse,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def set_document_validation(
    document_id: int,
    body: DocumentValidationRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentResponse:
    """Approve, reject or mark a document in review. REJECTED needs a reason."""
    try:
        check_validation_request(body.status, body.rejection_reason)
    except DocumentValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if await _scoped_document(session, user, document_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")

    doc = await validate_document(
        session,
        document_id,
        body.status,
        body.rejection_reason,
        user.user_id,
        ip_address=client_ip(request),
    )
    if doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return ActorDocumentResponse.model_validate(doc)
