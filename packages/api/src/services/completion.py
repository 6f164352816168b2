# This project was developed with assistance from AI tools.
"""Actor completion predicate.

Decides whether a policy's actor set is complete enough to start the
investigation. One dispatch table keyed by ``ActorRole`` describes how to
read each role's instances off a loaded policy, so every role is checked by
the same loop.

The functions here are pure: they read an already-loaded policy graph and
never touch the session.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NamedTuple

from db.enums import ActorRole

from .guarantors import resolve_required_roles


class RoleAccessor(NamedTuple):
    load: Callable[[object], list]
    is_present: Callable[[list], bool]


def _any(actors: list) -> bool:
    return bool(actors)


def _has_primary(landlords: list) -> bool:
    return any(getattr(landlord, "is_primary", False) for landlord in landlords)


ROLE_ACCESSORS: dict[ActorRole, RoleAccessor] = {
    ActorRole.LANDLORD: RoleAccessor(lambda p: list(p.landlords or []), _has_primary),
    ActorRole.TENANT: RoleAccessor(
        lambda p: [p.tenant] if p.tenant is not None else [], _any
    ),
    ActorRole.JOINT_OBLIGOR: RoleAccessor(lambda p: list(p.joint_obligors or []), _any),
    ActorRole.AVAL: RoleAccessor(lambda p: list(p.avals or []), _any),
}


@dataclass(frozen=True)
class ActorRef:
    role: ActorRole
    actor_id: int
    display_name: str


@dataclass
class ActorCompletionReport:
    missing_roles: list[ActorRole] = field(default_factory=list)
    incomplete_actors: list[ActorRef] = field(default_factory=list)
    completed_actors: list[ActorRef] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_roles and not self.incomplete_actors

    def describe(self) -> str:
        """Plain-language explanation of what is still outstanding."""
        if self.is_complete:
            return "All required actors have completed their information."
        parts = []
        if self.missing_roles:
            parts.append("missing " + ", ".join(r.label for r in self.missing_roles))
        if self.incomplete_actors:
            parts.append(
                "incomplete information from "
                + ", ".join(
                    f"{a.role.label} '{a.display_name}' (#{a.actor_id})"
                    for a in self.incomplete_actors
                )
            )
        return "; ".join(parts)


def active_actors(policy, role: ActorRole) -> list:
    """Non-archived instances of ``role`` on a loaded policy."""
    return [a for a in ROLE_ACCESSORS[role].load(policy) if a.archived_at is None]


def iter_active_actors(policy):
    """Yield (role, actor) for every non-archived actor, in role order."""
    for role in ActorRole:
        for actor in active_actors(policy, role):
            yield role, actor


def _ref(role: ActorRole, actor) -> ActorRef:
    return ActorRef(role=role, actor_id=actor.id, display_name=actor.display_name)


def evaluate_actor_completion(policy) -> ActorCompletionReport:
    """Evaluate required-role presence and per-actor completion.

    Every present, non-archived actor counts, including guarantors the
    current guarantor type does not require.
    """
    report = ActorCompletionReport()

    for requirement in resolve_required_roles(policy.guarantor_type):
        actors = active_actors(policy, requirement.role)
        accessor = ROLE_ACCESSORS[requirement.role]
        if not accessor.is_present(actors) or len(actors) < requirement.min_count:
            report.missing_roles.append(requirement.role)

    for role, actor in iter_active_actors(policy):
        if actor.information_complete:
            report.completed_actors.append(_ref(role, actor))
        else:
            report.incomplete_actors.append(_ref(role, actor))

    return report


def is_policy_actor_set_complete(policy) -> bool:
    return evaluate_actor_completion(policy).is_complete
