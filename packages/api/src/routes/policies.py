# This project was developed with assistance from AI tools.
"""Policy routes with RBAC enforcement.

Brokers create and follow their own policies. Lifecycle decisions
(transitions, investigation verdicts, contracts) are staff and admin only;
the administrative override is admin only.
"""

import logging

from db import get_db
from db.enums import PolicyStatus, UserRole
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import POLICY_ROLES, STAFF_ROLES, CurrentUser, client_ip, require_roles
from ..schemas import Pagination
from ..schemas.activity import PolicyActivityListResponse, PolicyActivityResponse
from ..schemas.actor import PortalLink
from ..schemas.policy import (
    ContractResponse,
    ForceTransitionRequest,
    GuarantorTypeChangeRequest,
    InvestigationCompleteRequest,
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicySummary,
    TransitionRequest,
)
from ..schemas.progress import PolicyProgressResponse
from ..services import policy as policy_service
from ..services.documents import DocumentUploadError
from ..services.lifecycle import (
    InvalidTransitionError,
    PolicyNotFoundError,
    TransitionPreconditionError,
)
from ..services.policy import (
    ContractError,
    GuarantorChangeError,
    InvestigationError,
    PolicyValidationError,
)
from ..services.pricing import PricingError
from ..services.progress import get_policy_progress

logger = logging.getLogger(__name__)

router = APIRouter()

_NOT_FOUND = "Policy not found"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


def _lifecycle_error(exc: Exception) -> HTTPException:
    """Map lifecycle and policy-service errors to HTTP errors."""
    if isinstance(exc, PolicyNotFoundError):
        return _not_found()
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, (PolicyValidationError, PricingError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    # Preconditions and state conflicts
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


_LIFECYCLE_ERRORS = (
    PolicyNotFoundError,
    InvalidTransitionError,
    TransitionPreconditionError,
    PolicyValidationError,
    PricingError,
    GuarantorChangeError,
    InvestigationError,
    ContractError,
)


@router.post(
    "/",
    response_model=PolicyResponse,
    status_code=201,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def create_policy(
    body: PolicyCreate,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Create a DRAFT policy with its actors."""
    try:
        policy = await policy_service.create_policy(
            session, user, body, ip_address=client_ip(request)
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    return PolicyResponse.model_validate(policy)


@router.get(
    "/",
    response_model=PolicyListResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def list_policies(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    filter_status: PolicyStatus | None = None,
) -> PolicyListResponse:
    """List policies visible to the current user's data scope."""
    policies, total = await policy_service.list_policies(
        session, user, offset=offset, limit=limit, filter_status=filter_status
    )
    return PolicyListResponse(
        data=[PolicySummary.model_validate(p) for p in policies],
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=(offset + limit < total),
        ),
    )


@router.get(
    "/{policy_id}",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def get_policy(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Get a single policy. Returns 404 for out-of-scope policies."""
    policy = await policy_service.get_policy(session, user, policy_id)
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)


@router.get(
    "/{policy_id}/progress",
    response_model=PolicyProgressResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def get_progress(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyProgressResponse:
    """Workflow step, actor completion and document checklist for a policy."""
    progress = await get_policy_progress(session, user, policy_id)
    if progress is None:
        raise _not_found()
    return progress


@router.get(
    "/{policy_id}/activities",
    response_model=PolicyActivityListResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def list_activities(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    action: str | None = None,
) -> PolicyActivityListResponse:
    """Policy activity timeline, oldest first."""
    activities = await policy_service.get_policy_activities(
        session, user, policy_id, action=action
    )
    if activities is None:
        raise _not_found()
    return PolicyActivityListResponse(
        policy_id=policy_id,
        count=len(activities),
        activities=[PolicyActivityResponse.model_validate(a) for a in activities],
    )


@router.post(
    "/{policy_id}/transition",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def transition(
    policy_id: int,
    body: TransitionRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Move a policy to another status, subject to the transition rules."""
    try:
        policy = await policy_service.change_status(
            session,
            user,
            policy_id,
            body.status,
            reason=body.reason,
            notes=body.notes,
            ip_address=client_ip(request),
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{policy_id}/force-transition",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def force_transition(
    policy_id: int,
    body: ForceTransitionRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Administrative override: any target status, reason required."""
    try:
        policy = await policy_service.force_status(
            session,
            user,
            policy_id,
            body.status,
            reason=body.reason,
            ip_address=client_ip(request),
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{policy_id}/send-invitations",
    response_model=list[PortalLink],
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def send_invitations(
    policy_id: int,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[PortalLink]:
    """Issue portal links to every active actor; DRAFT moves to COLLECTING_INFO."""
    try:
        links = await policy_service.send_invitations(
            session, user, policy_id, ip_address=client_ip(request)
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if links is None:
        raise _not_found()
    return links


@router.put(
    "/{policy_id}/guarantor-type",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*POLICY_ROLES))],
)
async def change_guarantor_type(
    policy_id: int,
    body: GuarantorTypeChangeRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Archive the current guarantors and register new ones for a new type."""
    try:
        policy = await policy_service.change_guarantor_type(
            session, user, policy_id, body, ip_address=client_ip(request)
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{policy_id}/investigation/complete",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def complete_investigation(
    policy_id: int,
    body: InvestigationCompleteRequest,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Record the investigation verdict."""
    try:
        policy = await policy_service.complete_investigation(
            session,
            user,
            policy_id,
            body.verdict,
            notes=body.notes,
            reason=body.reason,
            ip_address=client_ip(request),
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{policy_id}/contracts",
    response_model=ContractResponse,
    status_code=201,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def upload_contract(
    policy_id: int,
    request: Request,
    user: CurrentUser,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> ContractResponse:
    """Upload the policy contract; it becomes the current contract."""
    file_data = await file.read()
    try:
        contract = await policy_service.upload_contract(
            session,
            user,
            policy_id,
            filename=file.filename or "contract.pdf",
            content_type=file.content_type or "",
            file_data=file_data,
            ip_address=client_ip(request),
        )
    except DocumentUploadError as exc:
        raise HTTPException(
            status_code=413 if exc.too_large else 422,
            detail=str(exc),
        ) from exc
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if contract is None:
        raise _not_found()
    return ContractResponse.model_validate(contract)


@router.post(
    "/{policy_id}/contracts/mark-signed",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def mark_contract_signed(
    policy_id: int,
    request: Request,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Stamp the current contract as signed and move to CONTRACT_SIGNED."""
    try:
        policy = await policy_service.mark_contract_signed(
            session, user, policy_id, ip_address=client_ip(request)
        )
    except _LIFECYCLE_ERRORS as exc:
        raise _lifecycle_error(exc) from exc
    if policy is None:
        raise _not_found()
    return PolicyResponse.model_validate(policy)
