# This project was developed with assistance from AI tools.
"""Staff-side actor routes: edit, submit on behalf of, and verify actors,
plus their documents and references."""

import logging

from db import get_db
from db.enums import ActorRole, DocumentCategory
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import POLICY_ROLES, STAFF_ROLES, CurrentUser, client_ip, require_roles
from ..schemas.actor import (
    ActorResponse,
    ActorSubmitResponse,
    ActorUpdate,
    ActorVerifyRequest,
    ReferenceCreate,
    ReferenceListResponse,
    ReferenceResponse,
)
from ..schemas.auth import UserContext
from ..schemas.document import ActorDocumentListResponse, ActorDocumentResponse
from ..services import documents as doc_service
from ..services.activity import performer_type
from ..services.actors import ActorValidationError, get_actor_service
from ..services.documents import DocumentUploadError
from ..services.lifecycle import PolicyNotFoundError
from ..services.policy import get_policy

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_actor(session: AsyncSession, user: UserContext, policy_id: int, role, actor_id):
    """Resolve an in-scope, non-archived actor or raise 404."""
    if await get_policy(session, user, policy_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Policy not found")
    actor = await get_actor_service(role).get(session, policy_id, actor_id)
    if actor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Actor not found")
    return actor


@router.patch(
    "/policies/{policy_id}/actors/{role}/{actor_id}",
    response_model=ActorResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def update_actor(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    body: ActorUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    """Partial edit of an actor's information by staff or the owning broker."""
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    try:
        actor = await get_actor_service(role).update(
            session, actor, body.model_dump(exclude_unset=True)
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ActorResponse.model_validate(actor)


@router.post(
    "/policies/{policy_id}/actors/{role}/{actor_id}/submit",
    response_model=ActorSubmitResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def submit_actor(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorSubmitResponse:
    """Mark an actor's information complete on their behalf."""
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    try:
        outcome = await get_actor_service(role).submit(
            session,
            actor,
            performed_by_type=performer_type(user),
            performed_by_id=user.user_id,
            ip_address=client_ip(request),
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except PolicyNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Policy not found") from exc
    return ActorSubmitResponse(
        actor=ActorResponse.model_validate(outcome.actor),
        policy_status=outcome.policy_status.value if outcome.policy_status else "",
        policy_transitioned=outcome.policy_transitioned,
    )


@router.post(
    "/policies/{policy_id}/actors/{role}/{actor_id}/verify",
    response_model=ActorResponse,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def verify_actor(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    body: ActorVerifyRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    """Record staff verification of an actor."""
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    try:
        actor = await get_actor_service(role).verify(
            session, actor, body.status, body.notes, user, ip_address=client_ip(request)
        )
    except ActorValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ActorResponse.model_validate(actor)


@router.get(
    "/policies/{policy_id}/actors/{role}/{actor_id}/documents",
    response_model=ActorDocumentListResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def list_actor_documents(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentListResponse:
    await _load_actor(session, user, policy_id, role, actor_id)
    documents = await doc_service.list_actor_documents(session, role, actor_id)
    return ActorDocumentListResponse(
        data=[ActorDocumentResponse.model_validate(d) for d in documents],
        count=len(documents),
    )


@router.post(
    "/policies/{policy_id}/actors/{role}/{actor_id}/documents",
    response_model=ActorDocumentResponse,
    status_code=201,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def upload_actor_document(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    request: Request,
    user: CurrentUser,
    file: UploadFile = File(...),
    category: DocumentCategory = Form(...),
    session: AsyncSession = Depends(get_db),
) -> ActorDocumentResponse:
    """Upload a document on an actor's behalf."""
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    file_data = await file.read()
    try:
        doc = await doc_service.upload_actor_document(
            session,
            actor,
            category=category,
            filename=file.filename or "document",
            content_type=file.content_type or "",
            file_data=file_data,
            uploaded_by=user.user_id,
            performed_by_type=performer_type(user),
            ip_address=client_ip(request),
        )
    except DocumentUploadError as exc:
        raise HTTPException(status_code=413 if exc.too_large else 422, detail=str(exc)) from exc
    return ActorDocumentResponse.model_validate(doc)



@router.get(
    "/policies/{policy_id}/actors/{role}/{actor_id}/references",
    response_model=ReferenceListResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def list_actor_references(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ReferenceListResponse:
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    references = await get_actor_service(role).list_references(session, actor)
    return ReferenceListResponse(
        data=[ReferenceResponse.model_validate(r) for r in references],
        count=len(references),
    )


@router.post(
    "/policies/{policy_id}/actors/{role}/{actor_id}/references",
    response_model=ReferenceResponse,
    status_code=201,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def add_actor_reference(
    policy_id: int,
    role: ActorRole,
    actor_id: int,
    body: ReferenceCreate,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ReferenceResponse:
    """Add a reference on an actor's behalf, also after they submitted."""
    actor = await _load_actor(session, user, policy_id, role, actor_id)
    reference = await get_actor_service(role).add_reference(
        session,
        actor,
        body.model_dump(),
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=client_ip(request),
    )
    return ReferenceResponse.model_validate(reference)
