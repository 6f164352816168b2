# This project was developed with assistance from AI tools.
"""Actor services.

One ``ActorService`` base with a subclass per actor kind. Subclasses only
declare what differs (model, editable fields, required fields); loading,
token handling, submission and verification are shared.

Submitting an actor publishes ``ActorInformationCompleted`` on the policy
event bus. This module never changes a policy's status itself.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from db import ActorReference, Aval, JointObligor, Landlord, Policy, Tenant
from db.enums import (
    ActorRole,
    GuaranteeMethod,
    PerformedByType,
    PolicyStatus,
    ReferenceType,
    VerificationStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import UserContext
from .activity import log_activity, performer_type
from .events import ActorInformationCompleted, PolicyEventBus, event_bus

logger = logging.getLogger(__name__)


class ActorTokenError(Exception):
    """Raised when an actor access link is unknown, expired or revoked."""


class ActorValidationError(ValueError):
    """Raised when actor data cannot be saved or submitted as-is."""


@dataclass
class SubmitOutcome:
    actor: object
    policy_status: PolicyStatus | None
    policy_transitioned: bool


_COMMON_FIELDS = frozenset(
    {
        "is_company",
        "first_name",
        "middle_name",
        "paternal_last_name",
        "maternal_last_name",
        "company_name",
        "legal_rep_name",
        "email",
        "phone",
        "rfc",
        "curp",
        "nationality",
        "address",
        "employment_status",
        "occupation",
        "employer_name",
        "monthly_income",
    }
)

_GUARANTEE_PROPERTY_FIELDS = frozenset(
    {
        "property_value",
        "property_deed_number",
        "property_registry",
        "guarantee_property_address",
    }
)

_FIELD_LABELS = {
    "first_name": "first name",
    "paternal_last_name": "paternal last name",
    "company_name": "company name",
    "legal_rep_name": "legal representative",
    "guarantee_method": "guarantee method",
    "property_value": "guarantee property value",
    "guarantee_property_address": "guarantee property address",
    "monthly_income": "monthly income",
    "personal_reference": "a personal reference",
    "commercial_reference": "a commercial reference",
}


class ActorService:
    """Shared behaviour for every actor kind."""

    role: ActorRole
    model: type
    editable_fields: frozenset[str] = _COMMON_FIELDS
    person_required: tuple[str, ...] = ("first_name", "paternal_last_name", "email", "phone")
    company_required: tuple[str, ...] = ("company_name", "legal_rep_name", "email", "phone", "rfc")

    def __init__(self, bus: PolicyEventBus | None = None):
        self._bus = bus

    @property
    def bus(self) -> PolicyEventBus:
        return self._bus or event_bus

    # -- loading ---------------------------------------------------------

    async def get(self, session: AsyncSession, policy_id: int, actor_id: int):
        """Return a non-archived actor of this kind on the policy, or None."""
        stmt = select(self.model).where(
            self.model.id == actor_id,
            self.model.policy_id == policy_id,
            self.model.archived_at.is_(None),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_token(self, session: AsyncSession, token: str, now: datetime | None = None):
        """Resolve an access link token to its actor.

        Raises ActorTokenError for unknown, expired or archived actors.
        """
        now = now or datetime.now(UTC)
        stmt = select(self.model).where(self.model.access_token == token)
        result = await session.execute(stmt)
        actor = result.scalar_one_or_none()
        if actor is None:
            raise ActorTokenError("This access link is not valid.")
        if actor.token_expiry is None or actor.token_expiry <= now:
            raise ActorTokenError("This access link has expired. Ask for a new invitation.")
        if actor.archived_at is not None:
            raise ActorTokenError("This access link is no longer valid for this policy.")
        return actor

    # -- editing ---------------------------------------------------------

    async def update(
        self,
        session: AsyncSession,
        actor,
        changes: dict,
        *,
        self_service: bool = False,
    ):
        """Apply a partial update limited to this kind's editable fields.

        Self-service edits are refused once the actor has submitted.
        """
        if self_service and actor.information_complete:
            raise ActorValidationError(
                "Your information was already submitted. Contact the agency to change it."
            )
        unknown = sorted(set(changes) - self.editable_fields)
        if unknown:
            raise ActorValidationError(
                f"Fields not editable for a {self.role.label}: {', '.join(unknown)}"
            )
        for field_name, value in changes.items():
            setattr(actor, field_name, value)
        await session.commit()
        return actor

    def required_fields(self, actor) -> tuple[str, ...]:
        return self.company_required if actor.is_company else self.person_required

    def missing_fields(self, actor) -> list[str]:
        return [
            name for name in self.required_fields(actor) if getattr(actor, name, None) in (None, "")
        ]

    async def submit(
        self,
        session: AsyncSession,
        actor,
        *,
        performed_by_type: PerformedByType = PerformedByType.ACTOR,
        performed_by_id: str | None = None,
        ip_address: str | None = None,
        now: datetime | None = None,
    ) -> SubmitOutcome:
        """Mark the actor's information complete and announce it.

        Resubmitting a complete actor writes nothing new but still publishes
        the event, so a policy left waiting can be re-evaluated.
        """
        missing = self.missing_fields(actor) + await self.missing_references(session, actor)
        if missing:
            raise ActorValidationError(
                f"Cannot submit {self.role.label} information; missing: "
                + ", ".join(_FIELD_LABELS.get(m, m.replace("_", " ")) for m in missing)
            )

        if not actor.information_complete:
            actor.information_complete = True
            actor.completed_at = now or datetime.now(UTC)
            await session.flush()
            await log_activity(
                session,
                policy_id=actor.policy_id,
                action=f"{self.role.value}_info_completed",
                description=f"{self.role.label} {actor.display_name} completed their information",
                details={"actor_role": self.role.value, "actor_id": actor.id},
                performed_by_type=performed_by_type,
                performed_by_id=performed_by_id,
                ip_address=ip_address,
            )

        results = await self.bus.publish(
            session,
            ActorInformationCompleted(
                policy_id=actor.policy_id,
                role=self.role,
                actor_id=actor.id,
                performed_by_type=PerformedByType(performed_by_type),
                performed_by_id=performed_by_id,
                ip_address=ip_address,
            ),
        )
        transitioned = any(isinstance(r, PolicyStatus) for r in results)
        status = await self._policy_status(session, actor.policy_id)
        await session.commit()
        return SubmitOutcome(actor=actor, policy_status=status, policy_transitioned=transitioned)

    async def _policy_status(self, session: AsyncSession, policy_id: int) -> PolicyStatus | None:
        result = await session.execute(select(Policy.status).where(Policy.id == policy_id))
        status = result.scalar()
        return PolicyStatus(status) if status is not None else None

    # -- references ------------------------------------------------------

    def required_reference_type(self, actor) -> ReferenceType | None:
        """Kind of reference the actor must supply before submitting, if any."""
        return None

    async def list_references(self, session: AsyncSession, actor) -> list[ActorReference]:
        stmt = (
            select(ActorReference)
            .where(ActorReference.actor_role == self.role, ActorReference.actor_id == actor.id)
            .order_by(ActorReference.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def missing_references(self, session: AsyncSession, actor) -> list[str]:
        required = self.required_reference_type(actor)
        if required is None:
            return []
        stmt = select(func.count(ActorReference.id)).where(
            ActorReference.actor_role == self.role,
            ActorReference.actor_id == actor.id,
            ActorReference.reference_type == required,
        )
        result = await session.execute(stmt)
        if result.scalar():
            return []
        return [f"{required.value}_reference"]

    async def add_reference(
        self,
        session: AsyncSession,
        actor,
        payload: dict,
        *,
        self_service: bool = False,
        performed_by_type: PerformedByType = PerformedByType.ACTOR,
        performed_by_id: str | None = None,
        ip_address: str | None = None,
    ) -> ActorReference:
        """Attach a personal or commercial reference to the actor.

        Self-service additions are refused once the actor has submitted.
        """
        if self_service and actor.information_complete:
            raise ActorValidationError(
                "Your information was already submitted. Contact the agency to add references."
            )
        reference = ActorReference(
            policy_id=actor.policy_id,
            actor_role=self.role,
            actor_id=actor.id,
            **payload,
        )
        session.add(reference)
        await session.flush()
        await log_activity(
            session,
            policy_id=actor.policy_id,
            action="actor_reference_added",
            description=f"{self.role.label} {actor.display_name} added a reference",
            details={
                "actor_role": self.role.value,
                "actor_id": actor.id,
                "reference_id": reference.id,
                "reference_type": ReferenceType(reference.reference_type).value,
            },
            performed_by_type=performed_by_type,
            performed_by_id=performed_by_id,
            ip_address=ip_address,
        )
        await session.commit()
        await session.refresh(reference)
        return reference

    # -- access links ----------------------------------------------------

    def generate_token(self, actor, now: datetime | None = None) -> tuple[str, datetime]:
        """Reuse a still-valid token or mint a new one with the configured expiry."""
        now = now or datetime.now(UTC)
        if actor.access_token and actor.token_expiry and actor.token_expiry > now:
            return actor.access_token, actor.token_expiry
        actor.access_token = secrets.token_urlsafe(32)
        actor.token_expiry = now + timedelta(days=settings.ACTOR_TOKEN_EXPIRATION_DAYS)
        return actor.access_token, actor.token_expiry

    def portal_url(self, token: str) -> str:
        return f"{settings.APP_BASE_URL.rstrip('/')}/actor/{self.role.value}/{token}"

    # -- verification ----------------------------------------------------

    async def verify(
        self,
        session: AsyncSession,
        actor,
        status: VerificationStatus,
        notes: str | None,
        user: UserContext,
        *,
        ip_address: str | None = None,
        now: datetime | None = None,
    ):
        """Record staff verification of an actor. Rejections need notes."""
        status = VerificationStatus(status)
        if status == VerificationStatus.REJECTED and not (notes and notes.strip()):
            raise ActorValidationError("Notes are required to reject an actor's verification.")

        actor.verification_status = status
        actor.verification_notes = notes
        actor.verified_by = user.user_id
        actor.verified_at = now or datetime.now(UTC)
        await log_activity(
            session,
            policy_id=actor.policy_id,
            action=f"actor_verification_{status.value.lower()}",
            description=f"{self.role.label} {actor.display_name} verification set to {status.value}",
            details={
                "actor_role": self.role.value,
                "actor_id": actor.id,
                "notes": notes,
            },
            performed_by_type=performer_type(user),
            performed_by_id=user.user_id,
            ip_address=ip_address,
        )
        await session.commit()
        return actor


class LandlordService(ActorService):
    role = ActorRole.LANDLORD
    model = Landlord
    editable_fields = _COMMON_FIELDS | {"bank_name", "account_holder", "clabe"}


class TenantService(ActorService):
    role = ActorRole.TENANT
    model = Tenant
    editable_fields = _COMMON_FIELDS | {
        "previous_address",
        "previous_landlord_name",
        "previous_rent_amount",
    }

    def required_reference_type(self, actor) -> ReferenceType:
        return ReferenceType.COMMERCIAL if actor.is_company else ReferenceType.PERSONAL


class JointObligorService(ActorService):
    role = ActorRole.JOINT_OBLIGOR
    model = JointObligor
    editable_fields = _COMMON_FIELDS | _GUARANTEE_PROPERTY_FIELDS | {"guarantee_method"}

    def required_fields(self, actor) -> tuple[str, ...]:
        fields = (*super().required_fields(actor), "guarantee_method")
        if actor.guarantee_method == GuaranteeMethod.PROPERTY:
            fields += ("property_value", "guarantee_property_address")
        elif actor.guarantee_method == GuaranteeMethod.INCOME:
            fields += ("monthly_income",)
        return fields


class AvalService(ActorService):
    role = ActorRole.AVAL
    model = Aval
    editable_fields = _COMMON_FIELDS | _GUARANTEE_PROPERTY_FIELDS

    def required_fields(self, actor) -> tuple[str, ...]:
        return (*super().required_fields(actor), "property_value", "guarantee_property_address")


_SERVICES: dict[ActorRole, ActorService] = {
    ActorRole.LANDLORD: LandlordService(),
    ActorRole.TENANT: TenantService(),
    ActorRole.JOINT_OBLIGOR: JointObligorService(),
    ActorRole.AVAL: AvalService(),
}


def get_actor_service(role: ActorRole) -> ActorService:
    return _SERVICES[ActorRole(role)]
