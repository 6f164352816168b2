# This project was developed with assistance from AI tools.
"""Guarantor requirement resolution.

Maps a policy's guarantor type to the actor roles that must be present
before the policy can move to investigation.
"""

from dataclasses import dataclass

from db.enums import ActorRole, GuarantorType


@dataclass(frozen=True)
class RoleRequirement:
    """One required role.

    ``multiple`` roles accept any number of instances: at least
    ``min_count`` must exist and every existing instance must be complete.
    """

    role: ActorRole
    min_count: int = 1
    multiple: bool = False


_LANDLORD = RoleRequirement(ActorRole.LANDLORD)
_TENANT = RoleRequirement(ActorRole.TENANT)
_JOINT_OBLIGOR = RoleRequirement(ActorRole.JOINT_OBLIGOR, multiple=True)
_AVAL = RoleRequirement(ActorRole.AVAL, multiple=True)

GUARANTOR_REQUIREMENTS: dict[GuarantorType, tuple[RoleRequirement, ...]] = {
    GuarantorType.NONE: (),
    GuarantorType.JOINT_OBLIGOR: (_JOINT_OBLIGOR,),
    GuarantorType.AVAL: (_AVAL,),
    GuarantorType.BOTH: (_JOINT_OBLIGOR, _AVAL),
}


def resolve_required_roles(guarantor_type: GuarantorType) -> tuple[RoleRequirement, ...]:
    """Return the role requirements for a guarantor type, landlord and tenant first."""
    return (_LANDLORD, _TENANT, *GUARANTOR_REQUIREMENTS[GuarantorType(guarantor_type)])


def required_roles(guarantor_type: GuarantorType) -> frozenset[ActorRole]:
    return frozenset(req.role for req in resolve_required_roles(guarantor_type))


def guarantor_roles(guarantor_type: GuarantorType) -> frozenset[ActorRole]:
    """Roles that act as guarantors (joint obligor and/or aval) for this type."""
    return frozenset(req.role for req in GUARANTOR_REQUIREMENTS[GuarantorType(guarantor_type)])
