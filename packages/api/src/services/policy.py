# This project was developed with assistance from AI tools.
"""Policy service with role-based data scope filtering.

Every lookup goes through the caller's DataScope so brokers only reach the
policies they created. Functions return None for policies outside the
caller's scope (the routes map that to 404) and commit their own unit of
work. Status changes are delegated to ``services.lifecycle``.
"""

import logging
import secrets
import string
from datetime import UTC, datetime

from db import Aval, Contract, Investigation, JointObligor, Landlord, Policy, Tenant
from db.enums import ActorRole, GuarantorType, InvestigationVerdict, PolicyStatus
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..schemas.actor import ActorCreate, PortalLink
from ..schemas.auth import UserContext
from ..schemas.policy import GuarantorTypeChangeRequest, PolicyCreate
from .activity import list_activities, log_activity, performer_type
from .actors import get_actor_service
from .completion import iter_active_actors
from .documents import validate_upload
from .guarantors import guarantor_roles
from .lifecycle import (
    TransitionPreconditionError,
    coordinator,
    force_transition,
    load_policy_for_update,
    transition_loaded_policy,
    transition_policy,
)
from .pricing import calculate_policy_pricing, get_package
from .scope import apply_data_scope
from .storage import get_storage_service

logger = logging.getLogger(__name__)


class PolicyValidationError(ValueError):
    """Raised when policy input is inconsistent (actors, package, number)."""


class GuarantorChangeError(ValueError):
    """Raised when the guarantor type cannot be changed as requested."""


class InvestigationError(ValueError):
    """Raised when an investigation verdict cannot be recorded."""


class ContractError(ValueError):
    """Raised when a contract cannot be uploaded or signed in the current status."""


# Statuses in which the guarantor arrangement may still change.
GUARANTOR_CHANGE_STATUSES = frozenset(
    {
        PolicyStatus.DRAFT,
        PolicyStatus.COLLECTING_INFO,
        PolicyStatus.UNDER_INVESTIGATION,
        PolicyStatus.PENDING_APPROVAL,
    }
)
INVITATION_STATUSES = GUARANTOR_CHANGE_STATUSES
CONTRACT_UPLOAD_STATUSES = frozenset({PolicyStatus.APPROVED, PolicyStatus.CONTRACT_PENDING})

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
_NUMBER_ATTEMPTS = 5


def _policy_options():
    return (
        selectinload(Policy.landlords),
        selectinload(Policy.tenant),
        selectinload(Policy.joint_obligors),
        selectinload(Policy.avals),
        selectinload(Policy.investigation),
    )


async def get_policy(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
) -> Policy | None:
    """Return a policy with its actors if visible to the current user.

    Returns None (which the route maps to 404) for out-of-scope policies
    rather than 403, to avoid leaking their existence.
    """
    stmt = select(Policy).options(*_policy_options()).where(Policy.id == policy_id)
    stmt = apply_data_scope(stmt, user.data_scope, user)
    result = await session.execute(stmt)
    return result.unique().scalar_one_or_none()


async def list_policies(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
    filter_status: PolicyStatus | None = None,
) -> tuple[list[Policy], int]:
    """Return policies visible to the current user, newest first."""
    count_stmt = select(func.count(Policy.id))
    count_stmt = apply_data_scope(count_stmt, user.data_scope, user)
    if filter_status is not None:
        count_stmt = count_stmt.where(Policy.status == filter_status)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = select(Policy).order_by(Policy.created_at.desc(), Policy.id.desc())
    stmt = apply_data_scope(stmt, user.data_scope, user)
    if filter_status is not None:
        stmt = stmt.where(Policy.status == filter_status)
    stmt = stmt.offset(offset).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def generate_policy_number(now: datetime | None = None) -> str:
    """``POL-YYYYMMDD-XXX`` with three random uppercase alphanumerics."""
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(3))
    return f"POL-{now:%Y%m%d}-{suffix}"


async def _policy_number_taken(session: AsyncSession, number: str) -> bool:
    result = await session.execute(select(Policy.id).where(Policy.policy_number == number))
    return result.scalar() is not None


async def _assign_policy_number(
    session: AsyncSession, requested: str | None, now: datetime
) -> str:
    if requested:
        if await _policy_number_taken(session, requested):
            raise PolicyValidationError(f"Policy number {requested} is already in use")
        return requested
    for _ in range(_NUMBER_ATTEMPTS):
        number = generate_policy_number(now)
        if not await _policy_number_taken(session, number):
            return number
    raise PolicyValidationError("Could not generate a unique policy number; try again")


def _actor_from_payload(model, payload: ActorCreate, **extra):
    """Build an actor row from a create payload, keeping only the model's columns."""
    values = {k: v for k, v in payload.model_dump().items() if hasattr(model, k)}
    values.update(extra)
    return model(**values)


def _check_guarantors(
    guarantor_type: GuarantorType, joint_obligors: list, avals: list
) -> None:
    """Supplied guarantors must match the guarantor type exactly."""
    roles = guarantor_roles(guarantor_type)
    supplied = {ActorRole.JOINT_OBLIGOR: joint_obligors, ActorRole.AVAL: avals}
    for role, actors in supplied.items():
        if role in roles and not actors:
            raise PolicyValidationError(
                f"Guarantor type {GuarantorType(guarantor_type).value} requires "
                f"at least one {role.label}"
            )
        if role not in roles and actors:
            raise PolicyValidationError(
                f"Guarantor type {GuarantorType(guarantor_type).value} does not take "
                f"a {role.label}"
            )


async def create_policy(
    session: AsyncSession,
    user: UserContext,
    data: PolicyCreate,
    *,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Policy:
    """Create a DRAFT policy with its primary landlord, tenant and guarantors.

    Raises PolicyValidationError for an unknown package, a duplicate policy
    number or guarantors that do not match the guarantor type.
    """
    now = now or datetime.now(UTC)
    _check_guarantors(data.guarantor_type, data.joint_obligors, data.avals)

    package = None
    if data.package_id is not None:
        package = await get_package(session, data.package_id)
        if package is None:
            raise PolicyValidationError(f"Package {data.package_id} not found")

    pricing = calculate_policy_pricing(
        data.rent_amount,
        package,
        tenant_percentage=data.tenant_percentage,
        landlord_percentage=data.landlord_percentage,
    )
    number = await _assign_policy_number(session, data.policy_number, now)

    policy = Policy(
        policy_number=number,
        status=PolicyStatus.DRAFT,
        guarantor_type=data.guarantor_type,
        rent_amount=data.rent_amount,
        property_address=data.property_address,
        contract_length_months=(
            data.contract_length_months or settings.DEFAULT_CONTRACT_LENGTH_MONTHS
        ),
        package_id=data.package_id,
        tenant_percentage=data.tenant_percentage,
        landlord_percentage=data.landlord_percentage,
        total_price=pricing.total if package is not None else None,
        created_by=user.user_id,
    )
    policy.landlords = [_actor_from_payload(Landlord, data.landlord, is_primary=True)] + [
        _actor_from_payload(Landlord, extra, is_primary=False)
        for extra in data.additional_landlords
    ]
    policy.tenant = _actor_from_payload(Tenant, data.tenant)
    policy.joint_obligors = [_actor_from_payload(JointObligor, jo) for jo in data.joint_obligors]
    policy.avals = [_actor_from_payload(Aval, aval) for aval in data.avals]
    session.add(policy)
    await session.flush()

    await log_activity(
        session,
        policy_id=policy.id,
        action="policy_created",
        description=f"Policy {number} created",
        details={
            "policy_number": number,
            "guarantor_type": GuarantorType(data.guarantor_type).value,
            "rent_amount": str(data.rent_amount),
            "package_id": data.package_id,
            "total_price": str(pricing.total) if package is not None else None,
        },
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )
    policy_id = policy.id  # capture before commit
    await session.commit()
    logger.info("Policy %s (%s) created by %s", policy_id, number, user.user_id)
    return await get_policy(session, user, policy_id)


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


async def change_status(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    target: PolicyStatus,
    *,
    reason: str | None = None,
    notes: str | None = None,
    ip_address: str | None = None,
) -> Policy | None:
    """Validated status change requested by staff.

    Raises InvalidTransitionError or TransitionPreconditionError.
    """
    if await get_policy(session, user, policy_id) is None:
        return None
    await transition_policy(
        session,
        policy_id,
        target,
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        reason=reason,
        notes=notes,
        ip_address=ip_address,
    )
    await session.commit()
    return await get_policy(session, user, policy_id)


async def force_status(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    target: PolicyStatus,
    *,
    reason: str,
    ip_address: str | None = None,
) -> Policy | None:
    """Administrative override of the transition rules."""
    if await get_policy(session, user, policy_id) is None:
        return None
    await force_transition(
        session,
        policy_id,
        target,
        reason=reason,
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )
    await session.commit()
    return await get_policy(session, user, policy_id)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


async def send_invitations(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    *,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> list[PortalLink] | None:
    """Mint (or reuse) portal links for every active actor.

    A DRAFT policy moves to COLLECTING_INFO, and on to UNDER_INVESTIGATION
    when every actor had already completed their information. Delivering
    the links is left to the caller.
    """
    now = now or datetime.now(UTC)
    if await get_policy(session, user, policy_id) is None:
        return None
    policy = await load_policy_for_update(session, policy_id)
    if PolicyStatus(policy.status) not in INVITATION_STATUSES:
        raise PolicyValidationError(
            f"Invitations cannot be sent while the policy is {PolicyStatus(policy.status).value}"
        )

    links = []
    for role, actor in iter_active_actors(policy):
        service = get_actor_service(role)
        token, expires_at = service.generate_token(actor, now)
        links.append(
            PortalLink(
                role=role,
                actor_id=actor.id,
                display_name=actor.display_name,
                email=actor.email,
                url=service.portal_url(token),
                expires_at=expires_at,
            )
        )

    if PolicyStatus(policy.status) == PolicyStatus.DRAFT:
        await transition_loaded_policy(
            session,
            policy,
            PolicyStatus.COLLECTING_INFO,
            performed_by_type=performer_type(user),
            performed_by_id=user.user_id,
            ip_address=ip_address,
            now=now,
        )

    await log_activity(
        session,
        policy_id=policy_id,
        action="invitations_sent",
        description=f"Portal links issued to {len(links)} actors",
        details={
            "actors": [
                {"role": link.role.value, "actor_id": link.actor_id, "email": link.email}
                for link in links
            ]
        },
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )
    # Actors submitted while the policy was a draft sent no usable event.
    await coordinator.evaluate(
        session,
        policy,
        trigger={"action": "invitations_sent"},
        extra_details={"requested_by": {"type": performer_type(user).value, "id": user.user_id}},
        now=now,
    )
    await session.commit()
    return links


# ---------------------------------------------------------------------------
# Guarantor type change
# ---------------------------------------------------------------------------


async def change_guarantor_type(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    request: GuarantorTypeChangeRequest,
    *,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Policy | None:
    """Replace the policy's guarantors under a new guarantor type.

    Existing joint obligors and avals are archived, never deleted, so their
    documents and history stay attached to them.
    """
    now = now or datetime.now(UTC)
    if await get_policy(session, user, policy_id) is None:
        return None
    policy = await load_policy_for_update(session, policy_id)

    current_status = PolicyStatus(policy.status)
    if current_status not in GUARANTOR_CHANGE_STATUSES:
        raise GuarantorChangeError(
            f"The guarantor type cannot change while the policy is {current_status.value}"
        )
    previous_type = GuarantorType(policy.guarantor_type)
    new_type = GuarantorType(request.guarantor_type)
    if previous_type == new_type:
        raise GuarantorChangeError(f"The policy already uses guarantor type {new_type.value}")
    try:
        _check_guarantors(new_type, request.joint_obligors, request.avals)
    except PolicyValidationError as exc:
        raise GuarantorChangeError(str(exc)) from exc

    archive_reason = request.reason or f"Guarantor type changed to {new_type.value}"
    archived = []
    for guarantor in [*policy.joint_obligors, *policy.avals]:
        if guarantor.archived_at is None:
            guarantor.archived_at = now
            guarantor.archive_reason = archive_reason
            archived.append({"role": guarantor.role.value, "actor_id": guarantor.id})

    for payload in request.joint_obligors:
        policy.joint_obligors.append(_actor_from_payload(JointObligor, payload))
    for payload in request.avals:
        policy.avals.append(_actor_from_payload(Aval, payload))
    policy.guarantor_type = new_type
    await session.flush()

    await log_activity(
        session,
        policy_id=policy_id,
        action="guarantor_type_changed",
        description=f"Guarantor type changed from {previous_type.value} to {new_type.value}",
        details={
            "from": previous_type.value,
            "to": new_type.value,
            "reason": request.reason,
            "archived": archived,
            "added_joint_obligors": len(request.joint_obligors),
            "added_avals": len(request.avals),
        },
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )
    await session.commit()
    logger.info(
        "Policy %s guarantor type %s -> %s (%d archived)",
        policy_id,
        previous_type.value,
        new_type.value,
        len(archived),
    )
    return await get_policy(session, user, policy_id)


# ---------------------------------------------------------------------------
# Investigation
# ---------------------------------------------------------------------------


async def complete_investigation(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    verdict: InvestigationVerdict,
    *,
    notes: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Policy | None:
    """Record the investigation verdict and move the policy on.

    REJECTED moves to INVESTIGATION_REJECTED and needs a reason. APPROVED
    moves to PENDING_APPROVAL when every actor is verified; otherwise the
    policy stays UNDER_INVESTIGATION until staff finish verification.
    """
    now = now or datetime.now(UTC)
    verdict = InvestigationVerdict(verdict)
    if verdict == InvestigationVerdict.REJECTED and not (reason and reason.strip()):
        raise InvestigationError("A reason is required to reject the investigation.")

    if await get_policy(session, user, policy_id) is None:
        return None
    policy = await load_policy_for_update(session, policy_id)
    if PolicyStatus(policy.status) != PolicyStatus.UNDER_INVESTIGATION:
        raise InvestigationError(
            "The investigation can only be completed while the policy is UNDER_INVESTIGATION"
        )

    investigation = policy.investigation
    if investigation is None:
        investigation = Investigation(policy_id=policy.id)
        policy.investigation = investigation
    investigation.verdict = verdict
    investigation.notes = notes
    investigation.completed_by = user.user_id
    investigation.completed_at = now

    await log_activity(
        session,
        policy_id=policy_id,
        action="investigation_completed",
        description=f"Investigation completed with verdict {verdict.value}",
        details={"verdict": verdict.value, "notes": notes, "reason": reason},
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )

    if verdict == InvestigationVerdict.REJECTED:
        await transition_policy(
            session,
            policy_id,
            PolicyStatus.INVESTIGATION_REJECTED,
            performed_by_type=performer_type(user),
            performed_by_id=user.user_id,
            reason=reason,
            ip_address=ip_address,
            now=now,
        )
    else:
        try:
            await transition_policy(
                session,
                policy_id,
                PolicyStatus.PENDING_APPROVAL,
                performed_by_type=performer_type(user),
                performed_by_id=user.user_id,
                ip_address=ip_address,
                now=now,
            )
        except TransitionPreconditionError as exc:
            logger.info("Policy %s stays under investigation: %s", policy_id, exc)

    await session.commit()
    return await get_policy(session, user, policy_id)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


async def upload_contract(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    *,
    filename: str,
    content_type: str,
    file_data: bytes,
    ip_address: str | None = None,
) -> Contract | None:
    """Store a contract file and make it the policy's current contract.

    An APPROVED policy moves to CONTRACT_PENDING in the same unit of work.
    Raises DocumentUploadError for bad files and ContractError outside
    APPROVED / CONTRACT_PENDING.
    """
    validate_upload(content_type, file_data)
    if await get_policy(session, user, policy_id) is None:
        return None
    policy = await load_policy_for_update(session, policy_id)
    if PolicyStatus(policy.status) not in CONTRACT_UPLOAD_STATUSES:
        raise ContractError(
            f"Contracts cannot be uploaded while the policy is {PolicyStatus(policy.status).value}"
        )

    for previous in policy.contracts:
        previous.is_current = False
    contract = Contract(policy_id=policy_id, file_path="", is_current=True, uploaded_by=user.user_id)
    policy.contracts.append(contract)
    session.add(contract)
    await session.flush()

    storage = get_storage_service()
    object_key = storage.build_contract_key(policy_id, contract.id, filename)
    await storage.upload_file(file_data, object_key, content_type)
    contract.file_path = object_key

    await log_activity(
        session,
        policy_id=policy_id,
        action="contract_uploaded",
        description=f"Contract {filename} uploaded",
        details={"contract_id": contract.id, "file_path": object_key},
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
    )
    if PolicyStatus(policy.status) == PolicyStatus.APPROVED:
        await transition_loaded_policy(
            session,
            policy,
            PolicyStatus.CONTRACT_PENDING,
            performed_by_type=performer_type(user),
            performed_by_id=user.user_id,
            ip_address=ip_address,
            details={"contract_id": contract.id},
        )
    await session.commit()
    await session.refresh(contract)
    return contract


async def mark_contract_signed(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    *,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Policy | None:
    """Stamp the current contract as signed and move to CONTRACT_SIGNED."""
    now = now or datetime.now(UTC)
    if await get_policy(session, user, policy_id) is None:
        return None
    outcome = await transition_policy(
        session,
        policy_id,
        PolicyStatus.CONTRACT_SIGNED,
        performed_by_type=performer_type(user),
        performed_by_id=user.user_id,
        ip_address=ip_address,
        now=now,
    )
    current = next((c for c in outcome.policy.contracts if c.is_current), None)
    if current is None:
        raise ContractError("There is no current contract to mark as signed")
    if current.signed_at is None:
        current.signed_at = now
    await session.commit()
    return await get_policy(session, user, policy_id)


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


async def get_policy_activities(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    *,
    action: str | None = None,
) -> list | None:
    if await get_policy(session, user, policy_id) is None:
        return None
    return await list_activities(session, policy_id, action=action)

