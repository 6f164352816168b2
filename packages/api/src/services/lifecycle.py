# This project was developed with assistance from AI tools.
"""Policy status transition engine.

Every status change goes through here. A transition is checked in three
steps before anything is written:

1. Already there -- the target equals the current status. Returns success
   and writes nothing, so overlapping requests are harmless.
2. Adjacency -- the edge must exist in ``PolicyStatus.valid_transitions()``.
3. Preconditions -- rules attached to the target status (actor completion,
   actor verification, investigation verdict, current contract).

On success the status is persisted, the matching timestamp is stamped and
exactly one PolicyActivity entry is written. Callers own the commit.

``LifecycleCoordinator`` is the single consumer of
``ActorInformationCompleted`` events and the only place that moves a policy
automatically from COLLECTING_INFO to UNDER_INVESTIGATION.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from db import Investigation, Policy
from db.enums import InvestigationVerdict, PerformedByType, PolicyStatus, VerificationStatus
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .activity import log_activity
from .completion import evaluate_actor_completion, iter_active_actors
from .events import ActorInformationCompleted, PolicyEventBus, event_bus

logger = logging.getLogger(__name__)


class PolicyNotFoundError(LookupError):
    """Raised when a policy id does not exist."""


class InvalidTransitionError(ValueError):
    """Raised when a policy status transition is not in the allow-list."""

    def __init__(self, current: PolicyStatus, target: PolicyStatus):
        self.current = current
        self.target = target
        allowed = get_allowed_next_statuses(current)
        super().__init__(
            f"Cannot transition from '{current.value}' to '{target.value}'. "
            f"Allowed: {[s.value for s in allowed] if allowed else 'none (terminal status)'}."
        )


class TransitionPreconditionError(ValueError):
    """Raised when the edge is allowed but a rule for the target status is unmet."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(message)


@dataclass
class TransitionOutcome:
    policy: Policy
    previous_status: PolicyStatus
    changed: bool


_STATUS_ORDER = {status: i for i, status in enumerate(PolicyStatus)}

# Activity action written when entering a status; everything else is 'status_changed'.
_ENTRY_ACTIONS = {
    PolicyStatus.UNDER_INVESTIGATION: "investigation_started",
}


def get_allowed_next_statuses(status: PolicyStatus) -> list[PolicyStatus]:
    allowed = PolicyStatus.valid_transitions().get(PolicyStatus(status), frozenset())
    return sorted(allowed, key=_STATUS_ORDER.__getitem__)


def can_transition(current: PolicyStatus, target: PolicyStatus) -> bool:
    return PolicyStatus(target) in PolicyStatus.valid_transitions().get(
        PolicyStatus(current), frozenset()
    )


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar-month addition, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def load_policy_for_update(session: AsyncSession, policy_id: int) -> Policy | None:
    """Load a policy with its actors, investigation and contracts, row-locked.

    Pending changes are flushed first so the reload sees them.
    """
    await session.flush()
    stmt = (
        select(Policy)
        .options(
            selectinload(Policy.landlords),
            selectinload(Policy.tenant),
            selectinload(Policy.joint_obligors),
            selectinload(Policy.avals),
            selectinload(Policy.investigation),
            selectinload(Policy.contracts),
        )
        .where(Policy.id == policy_id)
        .with_for_update(of=Policy)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.unique().scalar_one_or_none()


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def _require_actor_completion(policy: Policy, reason: str | None) -> None:
    report = evaluate_actor_completion(policy)
    if not report.is_complete:
        raise TransitionPreconditionError(
            "actors_incomplete",
            f"Cannot start the investigation: {report.describe()}.",
        )


def _require_actor_verification(policy: Policy, reason: str | None) -> None:
    unverified = [
        f"{role.label} '{actor.display_name}' (#{actor.id})"
        for role, actor in iter_active_actors(policy)
        if actor.verification_status != VerificationStatus.APPROVED
    ]
    if unverified:
        raise TransitionPreconditionError(
            "actors_unverified",
            "Cannot send for approval: these actors are not verified yet: "
            + ", ".join(unverified)
            + ".",
        )


def _require_approved_investigation(policy: Policy, reason: str | None) -> None:
    investigation = policy.investigation
    if investigation is None or investigation.verdict != InvestigationVerdict.APPROVED:
        raise TransitionPreconditionError(
            "investigation_not_approved",
            "Cannot approve the policy: the investigation has no APPROVED verdict.",
        )


def _require_current_contract(policy: Policy, reason: str | None) -> None:
    if not any(c.is_current for c in policy.contracts or []):
        raise TransitionPreconditionError(
            "contract_missing",
            "Cannot continue: no current contract document has been uploaded for this policy.",
        )


def _require_reason(policy: Policy, reason: str | None) -> None:
    if not (reason and reason.strip()):
        raise TransitionPreconditionError(
            "reason_required",
            "A reason is required to reject the investigation.",
        )


PRECONDITIONS = {
    PolicyStatus.UNDER_INVESTIGATION: (_require_actor_completion,),
    PolicyStatus.INVESTIGATION_REJECTED: (_require_reason,),
    PolicyStatus.PENDING_APPROVAL: (_require_actor_verification,),
    PolicyStatus.APPROVED: (_require_approved_investigation,),
    PolicyStatus.CONTRACT_PENDING: (_require_current_contract,),
    PolicyStatus.CONTRACT_SIGNED: (_require_current_contract,),
}


def check_preconditions(policy: Policy, target: PolicyStatus, reason: str | None = None) -> None:
    """Raise TransitionPreconditionError for the first unmet rule of ``target``."""
    for rule in PRECONDITIONS.get(target, ()):
        rule(policy, reason)


# ---------------------------------------------------------------------------
# Applying
# ---------------------------------------------------------------------------


def _stamp(policy: Policy, target: PolicyStatus, reason: str | None, now: datetime) -> None:
    if target == PolicyStatus.UNDER_INVESTIGATION:
        policy.submitted_at = now
    elif target == PolicyStatus.APPROVED:
        policy.approved_at = now
    elif target == PolicyStatus.INVESTIGATION_REJECTED:
        policy.rejected_at = now
        policy.rejection_reason = reason
    elif target == PolicyStatus.ACTIVE:
        policy.activated_at = now
        policy.expires_at = add_months(now, policy.contract_length_months or 12)
    elif target == PolicyStatus.CANCELLED:
        policy.cancelled_at = now


def _open_investigation(policy: Policy) -> None:
    investigation = policy.investigation
    if investigation is None:
        policy.investigation = Investigation(policy_id=policy.id)
        return
    investigation.verdict = None
    investigation.notes = None
    investigation.completed_by = None
    investigation.completed_at = None


async def apply_transition(
    session: AsyncSession,
    policy: Policy,
    target: PolicyStatus,
    *,
    performed_by_type: PerformedByType = PerformedByType.SYSTEM,
    performed_by_id: str | None = None,
    reason: str | None = None,
    notes: str | None = None,
    ip_address: str | None = None,
    action: str | None = None,
    details: dict | None = None,
    now: datetime | None = None,
) -> None:
    """Write the new status, its timestamp, side effects and one activity entry.

    No validation happens here; callers check adjacency and preconditions.
    """
    now = now or datetime.now(UTC)
    previous = PolicyStatus(policy.status)

    policy.status = target
    _stamp(policy, target, reason, now)
    if notes:
        policy.review_notes = notes
    if target == PolicyStatus.UNDER_INVESTIGATION:
        _open_investigation(policy)

    payload = {"from": previous.value, "to": target.value}
    if reason:
        payload["reason"] = reason
    if notes:
        payload["notes"] = notes
    payload.update(details or {})

    await log_activity(
        session,
        policy_id=policy.id,
        action=action or _ENTRY_ACTIONS.get(target, "status_changed"),
        description=f"Status changed from {previous.value} to {target.value}",
        details=payload,
        performed_by_type=performed_by_type,
        performed_by_id=performed_by_id,
        ip_address=ip_address,
    )
    logger.info(
        "Policy %s transitioned %s -> %s by %s:%s",
        policy.id,
        previous.value,
        target.value,
        PerformedByType(performed_by_type).value,
        performed_by_id,
    )


async def transition_policy(
    session: AsyncSession,
    policy_id: int,
    target: PolicyStatus,
    *,
    performed_by_type: PerformedByType = PerformedByType.USER,
    performed_by_id: str | None = None,
    reason: str | None = None,
    notes: str | None = None,
    ip_address: str | None = None,
    details: dict | None = None,
    now: datetime | None = None,
) -> TransitionOutcome:
    """Validate and apply a status change.

    Raises:
        PolicyNotFoundError: the policy does not exist.
        InvalidTransitionError: the edge is not in the allow-list.
        TransitionPreconditionError: a rule for the target status is unmet.
    """
    policy = await load_policy_for_update(session, policy_id)
    if policy is None:
        raise PolicyNotFoundError(f"Policy {policy_id} not found")
    return await transition_loaded_policy(
        session,
        policy,
        target,
        performed_by_type=performed_by_type,
        performed_by_id=performed_by_id,
        reason=reason,
        notes=notes,
        ip_address=ip_address,
        details=details,
        now=now,
    )


async def transition_loaded_policy(
    session: AsyncSession,
    policy: Policy,
    target: PolicyStatus,
    *,
    performed_by_type: PerformedByType = PerformedByType.USER,
    performed_by_id: str | None = None,
    reason: str | None = None,
    notes: str | None = None,
    ip_address: str | None = None,
    details: dict | None = None,
    now: datetime | None = None,
) -> TransitionOutcome:
    """Same checks as ``transition_policy`` for a policy the caller already
    holds from ``load_policy_for_update``."""
    target = PolicyStatus(target)
    current = PolicyStatus(policy.status)
    if current == target:
        logger.debug("Policy %s already %s; nothing to do", policy.id, target.value)
        return TransitionOutcome(policy=policy, previous_status=current, changed=False)

    if not can_transition(current, target):
        logger.warning(
            "Rejected transition for policy %s: %s -> %s", policy.id, current.value, target.value
        )
        raise InvalidTransitionError(current, target)

    try:
        check_preconditions(policy, target, reason)
    except TransitionPreconditionError as exc:
        logger.warning(
            "Precondition %s blocked policy %s: %s -> %s",
            exc.rule,
            policy.id,
            current.value,
            target.value,
        )
        raise

    await apply_transition(
        session,
        policy,
        target,
        performed_by_type=performed_by_type,
        performed_by_id=performed_by_id,
        reason=reason,
        notes=notes,
        ip_address=ip_address,
        details=details,
        now=now,
    )
    return TransitionOutcome(policy=policy, previous_status=current, changed=True)


async def force_transition(
    session: AsyncSession,
    policy_id: int,
    target: PolicyStatus,
    *,
    reason: str,
    performed_by_id: str,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> TransitionOutcome:
    """Administrative override: skips adjacency and precondition checks.

    Any target is accepted, including leaving a terminal status. A reason
    is mandatory and is recorded on the ``force_status_transition`` entry.
    """
    if not (reason and reason.strip()):
        raise TransitionPreconditionError(
            "reason_required", "A reason is required to force a status change."
        )
    target = PolicyStatus(target)
    policy = await load_policy_for_update(session, policy_id)
    if policy is None:
        raise PolicyNotFoundError(f"Policy {policy_id} not found")

    current = PolicyStatus(policy.status)
    if current == target:
        return TransitionOutcome(policy=policy, previous_status=current, changed=False)

    logger.warning(
        "Forced transition for policy %s: %s -> %s by %s (%s)",
        policy_id,
        current.value,
        target.value,
        performed_by_id,
        reason,
    )
    await apply_transition(
        session,
        policy,
        target,
        performed_by_type=PerformedByType.ADMIN,
        performed_by_id=performed_by_id,
        reason=reason,
        ip_address=ip_address,
        action="force_status_transition",
        details={"forced": True},
        now=now,
    )
    return TransitionOutcome(policy=policy, previous_status=current, changed=True)


async def expire_policies(session: AsyncSession, now: datetime | None = None) -> list[int]:
    """Move every ACTIVE policy whose term has ended to EXPIRED.

    Returns the ids of the expired policies. Rows locked by another
    transaction are skipped and picked up on the next run.
    """
    now = now or datetime.now(UTC)
    stmt = (
        select(Policy)
        .where(Policy.status == PolicyStatus.ACTIVE, Policy.expires_at <= now)
        .with_for_update(skip_locked=True)
    )
    result = await session.execute(stmt)
    policies = list(result.scalars().all())

    expired = []
    for policy in policies:
        await apply_transition(
            session,
            policy,
            PolicyStatus.EXPIRED,
            performed_by_type=PerformedByType.SYSTEM,
            reason="Contract term ended",
            now=now,
        )
        expired.append(policy.id)
    if expired:
        logger.info("Expired %d policies: %s", len(expired), expired)
    return expired


# ---------------------------------------------------------------------------
# Event-driven auto-transition
# ---------------------------------------------------------------------------


class LifecycleCoordinator:
    """Moves a policy from COLLECTING_INFO to UNDER_INVESTIGATION.

    Runs when an actor finishes their information, and when a policy enters
    COLLECTING_INFO with every actor already complete. The move is made as
    the system actor once the completion predicate holds. Any other status,
    or an incomplete actor set, is a no-op.
    """

    async def on_actor_information_completed(
        self, session: AsyncSession, event: ActorInformationCompleted
    ) -> PolicyStatus | None:
        policy = await load_policy_for_update(session, event.policy_id)
        if policy is None:
            raise PolicyNotFoundError(f"Policy {event.policy_id} not found")

        if PolicyStatus(policy.status) != PolicyStatus.COLLECTING_INFO:
            logger.debug(
                "Policy %s is %s; completion event from %s #%s ignored",
                policy.id,
                policy.status,
                event.role.value,
                event.actor_id,
            )
            return None

        trigger = {"role": event.role.value, "actor_id": event.actor_id}
        submitted_by = {
            "type": PerformedByType(event.performed_by_type).value,
            "id": event.performed_by_id,
            "ip_address": event.ip_address,
        }
        return await self.evaluate(
            session, policy, trigger=trigger, extra_details={"submitted_by": submitted_by}
        )

    async def evaluate(
        self,
        session: AsyncSession,
        policy: Policy,
        *,
        trigger: dict,
        extra_details: dict | None = None,
        now: datetime | None = None,
    ) -> PolicyStatus | None:
        """Start the investigation on a loaded policy if every actor is complete.

        Returns the new status, or None when nothing changed.
        """
        if PolicyStatus(policy.status) != PolicyStatus.COLLECTING_INFO:
            return None

        report = evaluate_actor_completion(policy)
        if not report.is_complete:
            logger.info("Policy %s still waiting on actors: %s", policy.id, report.describe())
            return None

        await apply_transition(
            session,
            policy,
            PolicyStatus.UNDER_INVESTIGATION,
            performed_by_type=PerformedByType.SYSTEM,
            reason="All required actors completed their information",
            details={
                "trigger": trigger,
                "completed_actors": [
                    {"role": a.role.value, "actor_id": a.actor_id, "name": a.display_name}
                    for a in report.completed_actors
                ],
                **(extra_details or {}),
            },
            now=now,
        )
        return PolicyStatus.UNDER_INVESTIGATION

    def subscribe(self, bus: PolicyEventBus) -> None:
        bus.subscribe(ActorInformationCompleted, self.on_actor_information_completed)


coordinator = LifecycleCoordinator()
coordinator.subscribe(event_bus)
