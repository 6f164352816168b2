# This project was developed with assistance from AI tools.
"""Tests for actor services: editing, submission, access links and verification."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from db import ActorReference
from db.enums import (
    ActorRole,
    GuaranteeMethod,
    GuarantorType,
    PerformedByType,
    PolicyStatus,
    ReferenceType,
    VerificationStatus,
)

from src.core.config import settings
from src.services.actors import (
    ActorTokenError,
    ActorValidationError,
    AvalService,
    JointObligorService,
    LandlordService,
    TenantService,
    get_actor_service,
)
from src.services.events import ActorInformationCompleted, PolicyEventBus
from src.services.lifecycle import LifecycleCoordinator
from tests.factories import (
    NOW,
    activity_actions,
    added_activities,
    make_aval,
    make_complete_policy,
    make_joint_obligor,
    make_landlord,
    make_policy,
    make_result,
    make_session,
    make_tenant,
)
from tests.functional.personas import admin, staff


def _bus_with_coordinator() -> PolicyEventBus:
    bus = PolicyEventBus()
    LifecycleCoordinator().subscribe(bus)
    return bus


@pytest.mark.parametrize(
    "role,service_type",
    [
        (ActorRole.LANDLORD, LandlordService),
        (ActorRole.TENANT, TenantService),
        (ActorRole.JOINT_OBLIGOR, JointObligorService),
        ("aval", AvalService),
    ],
)
def test_get_actor_service(role, service_type):
    assert isinstance(get_actor_service(role), service_type)


# ---------------------------------------------------------------------------
# Required fields
# ---------------------------------------------------------------------------


def test_person_required_fields():
    tenant = make_tenant(phone=None, paternal_last_name="")
    assert get_actor_service(ActorRole.TENANT).missing_fields(tenant) == [
        "paternal_last_name",
        "phone",
    ]


def test_company_required_fields():
    landlord = make_landlord(is_company=True, company_name="Inmobiliaria Sol SA")
    assert get_actor_service(ActorRole.LANDLORD).missing_fields(landlord) == [
        "legal_rep_name",
        "rfc",
    ]


def test_joint_obligor_needs_guarantee_method():
    jo = make_joint_obligor(guarantee_method=None)
    assert get_actor_service(ActorRole.JOINT_OBLIGOR).missing_fields(jo) == ["guarantee_method"]


def test_property_backed_joint_obligor_needs_property():
    jo = make_joint_obligor(guarantee_method=GuaranteeMethod.PROPERTY)
    assert get_actor_service(ActorRole.JOINT_OBLIGOR).missing_fields(jo) == [
        "property_value",
        "guarantee_property_address",
    ]


def test_income_backed_joint_obligor_needs_income():
    jo = make_joint_obligor(guarantee_method=GuaranteeMethod.INCOME, monthly_income=None)
    assert get_actor_service(ActorRole.JOINT_OBLIGOR).missing_fields(jo) == ["monthly_income"]


def test_aval_needs_guarantee_property():
    aval = make_aval(property_value=None)
    assert get_actor_service(ActorRole.AVAL).missing_fields(aval) == ["property_value"]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


async def test_update_writes_allowed_fields():
    tenant = make_tenant()
    session = make_session()

    await get_actor_service(ActorRole.TENANT).update(
        session, tenant, {"phone": "3311112222", "previous_rent_amount": Decimal("9000")}
    )

    assert tenant.phone == "3311112222"
    assert tenant.previous_rent_amount == Decimal("9000")
    session.commit.assert_awaited_once()


async def test_update_refuses_fields_of_other_kinds():
    session = make_session()
    with pytest.raises(ActorValidationError, match="Fields not editable for a Tenant: clabe"):
        await get_actor_service(ActorRole.TENANT).update(session, make_tenant(), {"clabe": "0123"})
    session.commit.assert_not_awaited()


async def test_self_service_edit_refused_after_submission():
    tenant = make_tenant(complete=True)
    with pytest.raises(ActorValidationError, match="already submitted"):
        await get_actor_service(ActorRole.TENANT).update(
            make_session(), tenant, {"phone": "1"}, self_service=True
        )


async def test_staff_may_edit_a_submitted_actor():
    tenant = make_tenant(complete=True)
    await get_actor_service(ActorRole.TENANT).update(make_session(), tenant, {"phone": "1"})
    assert tenant.phone == "1"


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------


async def test_submit_with_missing_fields_publishes_nothing():
    handler = AsyncMock()
    bus = PolicyEventBus()
    bus.subscribe(ActorInformationCompleted, handler)
    tenant = make_tenant(phone=None)
    session = make_session(make_result(scalar=1))

    with pytest.raises(ActorValidationError, match="missing: phone$"):
        await TenantService(bus=bus).submit(session, tenant)

    assert tenant.information_complete is False
    handler.assert_not_awaited()


async def test_last_joint_obligor_moves_policy_to_investigation():
    jo = make_joint_obligor()
    policy = make_complete_policy(GuarantorType.JOINT_OBLIGOR, joint_obligors=[jo])
    session = make_session(
        make_result(one=policy),
        make_result(scalar=PolicyStatus.UNDER_INVESTIGATION.value),
    )

    outcome = await JointObligorService(bus=_bus_with_coordinator()).submit(
        session,
        jo,
        performed_by_type=PerformedByType.ACTOR,
        performed_by_id="joint_obligor:3",
        now=NOW,
    )

    assert jo.information_complete is True
    assert jo.completed_at == NOW
    assert outcome.policy_transitioned is True
    assert outcome.policy_status == PolicyStatus.UNDER_INVESTIGATION
    assert policy.status == PolicyStatus.UNDER_INVESTIGATION
    assert activity_actions(session) == ["joint_obligor_info_completed", "investigation_started"]
    completed, started = added_activities(session)
    assert completed.performed_by_type == "actor"
    assert started.performed_by_type == "system"
    session.commit.assert_awaited_once()


async def test_first_of_two_joint_obligors_does_not_transition():
    first, second = make_joint_obligor(3), make_joint_obligor(6)
    policy = make_complete_policy(GuarantorType.BOTH, joint_obligors=[first, second])
    session = make_session(
        make_result(one=policy),
        make_result(scalar=PolicyStatus.COLLECTING_INFO.value),
    )

    outcome = await JointObligorService(bus=_bus_with_coordinator()).submit(session, first)

    assert outcome.policy_transitioned is False
    assert outcome.policy_status == PolicyStatus.COLLECTING_INFO
    assert policy.status == PolicyStatus.COLLECTING_INFO
    assert activity_actions(session) == ["joint_obligor_info_completed"]


async def test_submit_in_draft_only_marks_actor():
    tenant = make_tenant()
    policy = make_policy(
        status=PolicyStatus.DRAFT, landlords=[make_landlord(complete=True)], tenant=tenant
    )
    session = make_session(
        make_result(scalar=1), make_result(one=policy), make_result(scalar="DRAFT")
    )

    outcome = await TenantService(bus=_bus_with_coordinator()).submit(session, tenant)

    assert tenant.information_complete is True
    assert outcome.policy_transitioned is False
    assert policy.status == PolicyStatus.DRAFT


async def test_resubmit_republishes_without_new_entry():
    """A repeated submit re-evaluates a policy left waiting."""
    handler = AsyncMock(return_value=None)
    bus = PolicyEventBus()
    bus.subscribe(ActorInformationCompleted, handler)
    tenant = make_tenant(complete=True)
    session = make_session(make_result(scalar=1), make_result(scalar="COLLECTING_INFO"))

    await TenantService(bus=bus).submit(session, tenant, performed_by_id="tenant:2")

    assert tenant.completed_at == NOW
    assert activity_actions(session) == []
    handler.assert_awaited_once()
    event = handler.await_args.args[1]
    assert event == ActorInformationCompleted(
        policy_id=10,
        role=ActorRole.TENANT,
        actor_id=2,
        performed_by_type=PerformedByType.ACTOR,
        performed_by_id="tenant:2",
    )


# ---------------------------------------------------------------------------
# Access links
# ---------------------------------------------------------------------------


async def test_unknown_token_refused():
    session = make_session(make_result(one=None))
    with pytest.raises(ActorTokenError, match="not valid"):
        await get_actor_service(ActorRole.TENANT).get_by_token(session, "nope")


async def test_expired_token_refused():
    tenant = make_tenant(access_token="tok", token_expiry=NOW - timedelta(minutes=1))
    session = make_session(make_result(one=tenant))
    with pytest.raises(ActorTokenError, match="expired"):
        await get_actor_service(ActorRole.TENANT).get_by_token(session, "tok", now=NOW)


async def test_archived_actor_token_refused():
    aval = make_aval(archived=True, access_token="tok", token_expiry=NOW + timedelta(days=1))
    session = make_session(make_result(one=aval))
    with pytest.raises(ActorTokenError, match="no longer valid"):
        await get_actor_service(ActorRole.AVAL).get_by_token(session, "tok", now=NOW)


async def test_valid_token_returns_actor():
    tenant = make_tenant(access_token="tok", token_expiry=NOW + timedelta(days=1))
    session = make_session(make_result(one=tenant))
    assert await get_actor_service(ActorRole.TENANT).get_by_token(session, "tok", now=NOW) is tenant


def test_generate_token_reuses_valid_token():
    tenant = make_tenant(access_token="tok", token_expiry=NOW + timedelta(days=2))
    assert get_actor_service(ActorRole.TENANT).generate_token(tenant, NOW) == (
        "tok",
        NOW + timedelta(days=2),
    )


def test_generate_token_mints_with_configured_expiry(monkeypatch):
    monkeypatch.setattr(settings, "ACTOR_TOKEN_EXPIRATION_DAYS", 7)
    tenant = make_tenant(access_token="old", token_expiry=NOW - timedelta(days=1))

    token, expiry = get_actor_service(ActorRole.TENANT).generate_token(tenant, NOW)

    assert token != "old"
    assert len(token) >= 40
    assert tenant.access_token == token
    assert expiry == NOW + timedelta(days=7)


def test_portal_url(monkeypatch):
    monkeypatch.setattr(settings, "APP_BASE_URL", "https://app.example.com/")
    url = get_actor_service(ActorRole.JOINT_OBLIGOR).portal_url("abc")
    assert url == "https://app.example.com/actor/joint_obligor/abc"


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


async def test_rejecting_verification_requires_notes():
    with pytest.raises(ActorValidationError, match="Notes are required"):
        await get_actor_service(ActorRole.TENANT).verify(
            make_session(), make_tenant(), VerificationStatus.REJECTED, "  ", staff()
        )


async def test_staff_verification():
    tenant = make_tenant()
    session = make_session()

    await get_actor_service(ActorRole.TENANT).verify(
        session, tenant, VerificationStatus.APPROVED, None, staff(), now=NOW
    )

    assert tenant.verification_status == VerificationStatus.APPROVED
    assert tenant.verified_at == NOW
    [entry] = added_activities(session)
    assert entry.action == "actor_verification_approved"
    assert entry.performed_by_type == "user"


async def test_admin_verification_logged_as_admin():
    session = make_session()
    await get_actor_service(ActorRole.LANDLORD).verify(
        session, make_landlord(), VerificationStatus.REJECTED, "Deed does not match", admin()
    )
    [entry] = added_activities(session)
    assert entry.action == "actor_verification_rejected"
    assert entry.performed_by_type == "admin"
    assert entry.details["notes"] == "Deed does not match"


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


def _reference_payload(**overrides):
    payload = {
        "reference_type": ReferenceType.PERSONAL,
        "name": "Rosa Campos",
        "phone": "3312345678",
        "email": None,
        "relationship_to_actor": "Former employer",
    }
    payload.update(overrides)
    return payload


def test_tenant_reference_requirement_follows_person_or_company():
    service = get_actor_service(ActorRole.TENANT)
    assert service.required_reference_type(make_tenant()) == ReferenceType.PERSONAL
    assert service.required_reference_type(make_tenant(is_company=True)) == ReferenceType.COMMERCIAL
    assert get_actor_service(ActorRole.LANDLORD).required_reference_type(make_landlord()) is None


async def test_tenant_without_reference_cannot_submit():
    tenant = make_tenant()
    session = make_session(make_result(scalar=0))

    with pytest.raises(ActorValidationError, match="missing: a personal reference"):
        await TenantService(bus=PolicyEventBus()).submit(session, tenant)

    assert tenant.information_complete is False
    session.commit.assert_not_awaited()


async def test_missing_fields_and_reference_reported_together():
    tenant = make_tenant(is_company=True, company_name="Rentas SA", legal_rep_name="Eva Ruiz")
    session = make_session(make_result(scalar=0))

    with pytest.raises(ActorValidationError) as exc_info:
        await TenantService(bus=PolicyEventBus()).submit(session, tenant)

    assert str(exc_info.value).endswith("missing: rfc, a commercial reference")


async def test_landlord_submit_does_not_query_references():
    handler = AsyncMock(return_value=None)
    bus = PolicyEventBus()
    bus.subscribe(ActorInformationCompleted, handler)
    landlord = make_landlord()
    session = make_session(make_result(scalar="COLLECTING_INFO"))

    await LandlordService(bus=bus).submit(session, landlord)

    assert landlord.information_complete is True
    assert session.execute.await_count == 1


async def test_add_reference_logs_and_commits():
    tenant = make_tenant()
    session = make_session()

    reference = await get_actor_service(ActorRole.TENANT).add_reference(
        session, tenant, _reference_payload(), performed_by_id="tenant:2"
    )

    assert isinstance(reference, ActorReference)
    assert reference.actor_role == ActorRole.TENANT
    assert reference.actor_id == 2
    assert reference.policy_id == 10
    [entry] = added_activities(session)
    assert entry.action == "actor_reference_added"
    assert entry.performed_by_type == "actor"
    assert entry.details == {
        "actor_role": "tenant",
        "actor_id": 2,
        "reference_id": 501,
        "reference_type": "personal",
    }
    session.commit.assert_awaited_once()


async def test_self_service_reference_refused_after_submission():
    session = make_session()
    with pytest.raises(ActorValidationError, match="already submitted"):
        await get_actor_service(ActorRole.TENANT).add_reference(
            session, make_tenant(complete=True), _reference_payload(), self_service=True
        )
    session.add.assert_not_called()


async def test_staff_may_add_reference_after_submission():
    session = make_session()
    reference = await get_actor_service(ActorRole.AVAL).add_reference(
        session,
        make_aval(complete=True),
        _reference_payload(reference_type=ReferenceType.COMMERCIAL),
        performed_by_type=PerformedByType.USER,
        performed_by_id="staff-sofia",
    )
    assert reference.actor_role == ActorRole.AVAL
    assert reference.reference_type == ReferenceType.COMMERCIAL


async def test_list_references():
    refs = [ActorReference(id=1, actor_role=ActorRole.TENANT, actor_id=2, name="A", phone="1")]
    session = make_session(make_result(items=refs))
    assert await get_actor_service(ActorRole.TENANT).list_references(session, make_tenant()) == refs
