# This project was developed with assistance from AI tools.
"""Actor self-service portal routes.

Authenticated by the actor's access token in the URL rather than a JWT.
Expired, unknown and archived-actor tokens are refused with 403.
"""

import logging

from db import get_db
from db.enums import ActorRole, DocumentCategory, PerformedByType
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import client_ip
from ..schemas.actor import (
    ActorResponse,
    ActorSubmitResponse,
    ActorUpdate,
    ReferenceCreate,
    ReferenceListResponse,
    ReferenceResponse,
)
from ..schemas.document import (
    ActorDocumentListResponse,
    ActorDocumentResponse,
    ActorDocumentStatus,
)
from ..services import documents as doc_service
from ..services.actors import ActorTokenError, ActorValidationError, get_actor_service
from ..services.document_requirements import get_actor_document_status
from ..services.documents import DocumentUploadError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _actor_for_token(session: AsyncSession, role: ActorRole, token: str):
    try:
        return await get_actor_service(role).get_by_token(session, token)
    except ActorTokenError as exc:
        logger.warning("Portal access refused for %s token: %s", role.value, exc)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


def _portal_identity(role: ActorRole, actor) -> str:
    return f"{role.value}:{actor.id}"


@router.get("/actor/{role}/{token}", response_model=ActorResponse)
async def get_own_information(
    role: ActorRole,
    token: str,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    actor = await _actor_for_token(session, role, token)
    return ActorResponse.model_validate(actor)


@router.patch("/actor/{role}/{token}", response_model=ActorResponse)
async def save_own_information(
    role: ActorRole,
    token: str,
    body: ActorUpdate,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    """Partial save from the portal form. Refused after submission."""
    actor = await _actor_for_token(session, role, token)
    try:
        actor = await get_actor_service(role).update(
            session, actor, body.model_dump(exclude_unset=True), self_service=True
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ActorResponse.model_validate(actor)


@router.post("/actor/{role}/{token}/submit", response_model=ActorSubmitResponse)
async def submit_own_information(
    role: ActorRole,
    token: str,
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> ActorSubmitResponse:
    """Mark the actor's information complete.

    The policy may move to UNDER_INVESTIGATION as a result; the response
    says whether it did.
    """
    actor = await _actor_for_token(session, role, token)
    try:
        outcome = await get_actor_service(role).submit(
            session,
            actor,
            performed_by_type=PerformedByType.ACTOR,
            performed_by_id=_portal_identity(role, actor),
            ip_address=client_ip(request),
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ActorSubmitResponse(
        actor=ActorResponse.model_validate(outcome.actor),
        policy_status=outcome.policy_status.value if outcome.policy_status else "",
        policy_transitioned=outcome.policy_transitioned,
    )


@router.get("/actor/{role}/{token}/documents", response_model=ActorDocumentListResponse)
async def list_own_documents(
    role: ActorRole,
    token: str,
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentListResponse:
    actor = await _actor_for_token(session, role, token)
    documents = await doc_service.list_actor_documents(session, role, actor.id)
    return ActorDocumentListResponse(
        data=[ActorDocumentResponse.model_validate(d) for d in documents],
        count=len(documents),
    )


@router.get("/actor/{role}/{token}/documents/checklist", response_model=ActorDocumentStatus)
async def own_document_checklist(
    role: ActorRole,
    token: str,
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentStatus:
    """Which documents this actor still has to upload."""
    actor = await _actor_for_token(session, role, token)
    documents = await doc_service.list_actor_documents(session, role, actor.id)
    return get_actor_document_status(role, actor, documents)


@router.post(
    "/actor/{role}/{token}/documents",
    response_model=ActorDocumentResponse,
    status_code=201,
)
async def upload_own_document(
    role: ActorRole,
    token: str,
    request: Request,
    file: UploadFile = File(...),
    category: DocumentCategory = Form(...),
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentResponse:
    actor = await _actor_for_token(session, role, token)
    file_data = await file.read()
    try:
        doc = await doc_service.upload_actor_document(
            session,
            actor,
            category=category,
            filename=file.filename or "document",
            content_type=file.content_type or "",
            file_data=file_data,
            uploaded_by=_portal_identity(role, actor),
            performed_by_type=PerformedByType.ACTOR,
            ip_address=client_ip(request),
        )
    except DocumentUploadError as exc:
        raise HTTPException(status_code=413 if exc.too_large else 422, detail=str(exc)) from exc
    return ActorDocumentResponse.model_validate(doc)


@router.get("/actor/{role}/{token}/references", response_model=ReferenceListResponse)
async def list_own_references(
    role: ActorRole,
    token: str,
    session: AsyncSession = Depends(get_db),
) -> ReferenceListResponse:
    actor = await _actor_for_token(session, role, token)
    references = await get_actor_service(role).list_references(session, actor)
    return ReferenceListResponse(
        data=[ReferenceResponse.model_validate(r) for r in references],
        count=len(references),
    )


@router.post(
    "/actor/{role}/{token}/references",
    response_model=ReferenceResponse,
    status_code=201,
)
async def add_own_reference(
    role: ActorRole,
    token: str,
    body: ReferenceCreate,
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> ReferenceResponse:
    """Add a reference from the portal. Refused after submission."""
    actor = await _actor_for_token(session, role, token)
    try:
        reference = await get_actor_service(role).add_reference(
            session,
            actor,
            body.model_dump(),
            self_service=True,
            performed_by_type=PerformedByType.ACTOR,
            performed_by_id=_portal_identity(role, actor),
            ip_address=client_ip(request),
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ReferenceResponse.model_validate(reference)
