# This project was developed with assistance from AI tools.
"""Tests for the policy service: creation, invitations, guarantor changes,
investigation verdicts and contracts."""

import re
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from db import Contract, Policy
from db.enums import (
    ActorRole,
    GuarantorType,
    InvestigationVerdict,
    PolicyStatus,
)

from src.core.config import settings
from src.schemas.actor import ActorCreate
from src.schemas.policy import GuarantorTypeChangeRequest, PolicyCreate
from src.services.completion import evaluate_actor_completion
from src.services.lifecycle import InvalidTransitionError
from src.services.policy import (
    ContractError,
    GuarantorChangeError,
    InvestigationError,
    PolicyValidationError,
    change_guarantor_type,
    complete_investigation,
    create_policy,
    generate_policy_number,
    list_policies,
    mark_contract_signed,
    send_invitations,
    upload_contract,
)
from tests.factories import (
    NOW,
    POLICY_ID,
    activity_actions,
    added_activities,
    make_complete_policy,
    make_contract,
    make_investigation,
    make_joint_obligor,
    make_package,
    make_policy,
    make_result,
    make_session,
)
from tests.functional.personas import BROKER_USER_ID, broker, staff


def _actor(email, **kwargs) -> ActorCreate:
    return ActorCreate(email=email, first_name="Ana", paternal_last_name="Lopez", **kwargs)


def _create_request(**overrides) -> PolicyCreate:
    values = {
        "rent_amount": Decimal("15000"),
        "guarantor_type": GuarantorType.JOINT_OBLIGOR,
        "property_address": "Calle Roble 12",
        "landlord": _actor("owner@example.com"),
        "additional_landlords": [_actor("coowner@example.com")],
        "tenant": _actor("tenant@example.com"),
        "joint_obligors": [_actor("jo@example.com", guarantee_method="income")],
    }
    values.update(overrides)
    return PolicyCreate(**values)


def _added_policy(session) -> Policy:
    return next(c.args[0] for c in session.add.call_args_list if isinstance(c.args[0], Policy))


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def test_generated_policy_number_format():
    assert re.fullmatch(r"POL-20260301-[A-Z0-9]{3}", generate_policy_number(NOW))


async def test_create_policy_builds_draft_with_actors():
    created = make_policy()
    session = make_session(make_result(scalar=None), make_result(one=created))

    result = await create_policy(session, broker(), _create_request(), now=NOW)

    assert result is created
    policy = _added_policy(session)
    assert policy.status == PolicyStatus.DRAFT
    assert policy.created_by == BROKER_USER_ID
    assert re.fullmatch(r"POL-20260301-[A-Z0-9]{3}", policy.policy_number)
    assert [landlord.is_primary for landlord in policy.landlords] == [True, False]
    assert policy.tenant.email == "tenant@example.com"
    assert len(policy.joint_obligors) == 1
    assert policy.avals == []
    assert policy.contract_length_months == settings.DEFAULT_CONTRACT_LENGTH_MONTHS
    assert policy.total_price is None
    assert activity_actions(session) == ["policy_created"]
    session.commit.assert_awaited_once()


async def test_create_policy_prices_package(monkeypatch):
    monkeypatch.setattr(settings, "IVA_RATE", 0.16)
    session = make_session(
        make_result(one=make_package()),
        make_result(scalar=None),
        make_result(one=make_policy()),
    )

    await create_policy(session, broker(), _create_request(package_id=1), now=NOW)

    assert _added_policy(session).total_price == Decimal("4060.00")


async def test_create_policy_unknown_package():
    session = make_session(make_result(one=None))
    with pytest.raises(PolicyValidationError, match="Package 7 not found"):
        await create_policy(session, broker(), _create_request(package_id=7))
    session.add.assert_not_called()


async def test_create_policy_requested_number_taken():
    session = make_session(make_result(scalar=99))
    with pytest.raises(PolicyValidationError, match="already in use"):
        await create_policy(session, broker(), _create_request(policy_number="POL-1"))


async def test_create_policy_requires_guarantor_for_type():
    session = make_session()
    with pytest.raises(PolicyValidationError, match="requires at least one Joint Obligor"):
        await create_policy(session, broker(), _create_request(joint_obligors=[]))
    session.execute.assert_not_awaited()


async def test_create_policy_rejects_unrequested_guarantor():
    request = _create_request(
        guarantor_type=GuarantorType.NONE,
        joint_obligors=[],
        avals=[_actor("aval@example.com")],
    )
    with pytest.raises(PolicyValidationError, match="does not take a Aval"):
        await create_policy(make_session(), broker(), request)


async def test_list_policies_returns_page_and_total():
    policies = [make_policy(policy_id=1), make_policy(policy_id=2)]
    session = make_session(make_result(scalar=5), make_result(items=policies))

    rows, total = await list_policies(session, broker(), offset=0, limit=2)

    assert rows == policies
    assert total == 5


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


async def test_send_invitations_moves_draft_to_collecting_info():
    policy = make_policy(
        guarantor_type=GuarantorType.JOINT_OBLIGOR, joint_obligors=[make_joint_obligor()]
    )
    session = make_session(
        make_result(one=policy), make_result(one=policy), make_result(one=policy)
    )

    links = await send_invitations(session, broker(), POLICY_ID, now=NOW)

    assert [(link.role, link.actor_id) for link in links] == [
        (ActorRole.LANDLORD, 1),
        (ActorRole.TENANT, 2),
        (ActorRole.JOINT_OBLIGOR, 3),
    ]
    assert all(f"/actor/{link.role.value}/" in link.url for link in links)
    assert policy.tenant.access_token is not None
    assert policy.status == PolicyStatus.COLLECTING_INFO
    assert activity_actions(session) == ["status_changed", "invitations_sent"]
    session.commit.assert_awaited_once()


async def test_resending_invitations_keeps_status_and_tokens():
    policy = make_policy(status=PolicyStatus.COLLECTING_INFO)
    session = make_session(make_result(one=policy), make_result(one=policy))
    first = await send_invitations(session, broker(), POLICY_ID, now=NOW)

    session = make_session(make_result(one=policy), make_result(one=policy))
    second = await send_invitations(session, broker(), POLICY_ID, now=NOW)

    assert [link.url for link in first] == [link.url for link in second]
    assert policy.status == PolicyStatus.COLLECTING_INFO
    assert activity_actions(session) == ["invitations_sent"]


async def test_invitations_for_a_draft_completed_in_advance_start_investigation():
    """Actors submitted while the policy was a draft are picked up on invitation."""
    policy = make_complete_policy(GuarantorType.JOINT_OBLIGOR, status=PolicyStatus.DRAFT)
    session = make_session(make_result(one=policy), make_result(one=policy))

    links = await send_invitations(session, staff(), POLICY_ID, now=NOW)

    assert len(links) == 3
    assert policy.status == PolicyStatus.UNDER_INVESTIGATION
    assert policy.submitted_at == NOW
    assert policy.investigation is not None
    assert activity_actions(session) == [
        "status_changed",
        "invitations_sent",
        "investigation_started",
    ]
    started = added_activities(session)[-1]
    assert started.performed_by_type == "system"
    assert started.details["trigger"] == {"action": "invitations_sent"}
    assert started.details["requested_by"] == {"type": "user", "id": "staff-sofia"}
    session.commit.assert_awaited_once()


async def test_resending_invitations_moves_a_waiting_complete_policy():
    policy = make_complete_policy(status=PolicyStatus.COLLECTING_INFO)
    session = make_session(make_result(one=policy), make_result(one=policy))

    await send_invitations(session, broker(), POLICY_ID, now=NOW)

    assert policy.status == PolicyStatus.UNDER_INVESTIGATION
    assert activity_actions(session) == ["invitations_sent", "investigation_started"]


async def test_invitations_refused_after_approval():
    policy = make_complete_policy(status=PolicyStatus.ACTIVE)
    session = make_session(make_result(one=policy), make_result(one=policy))
    with pytest.raises(PolicyValidationError, match="cannot be sent"):
        await send_invitations(session, broker(), POLICY_ID)


async def test_invitations_out_of_scope_returns_none():
    session = make_session(make_result(one=None))
    assert await send_invitations(session, broker(), POLICY_ID) is None


# ---------------------------------------------------------------------------
# Guarantor type change
# ---------------------------------------------------------------------------


async def test_change_guarantor_type_archives_previous_guarantors():
    old_jo = make_joint_obligor(complete=True)
    policy = make_complete_policy(GuarantorType.JOINT_OBLIGOR, joint_obligors=[old_jo])
    session = make_session(make_result(one=policy), make_result(one=policy), make_result(one=policy))
    request = GuarantorTypeChangeRequest(
        guarantor_type=GuarantorType.AVAL,
        reason="Joint obligor withdrew",
        avals=[_actor("aval@example.com")],
    )

    await change_guarantor_type(session, broker(), POLICY_ID, request, now=NOW)

    assert policy.guarantor_type == GuarantorType.AVAL
    assert policy.status == PolicyStatus.COLLECTING_INFO
    assert old_jo.archived_at == NOW
    assert old_jo.archive_reason == "Joint obligor withdrew"
    assert [a.email for a in policy.avals] == ["aval@example.com"]
    [entry] = added_activities(session)
    assert entry.action == "guarantor_type_changed"
    assert entry.details["archived"] == [{"role": "joint_obligor", "actor_id": 3}]

    # the new aval now blocks completion; the archived joint obligor does not count
    report = evaluate_actor_completion(policy)
    assert [a.role for a in report.incomplete_actors] == [ActorRole.AVAL]


async def test_change_to_same_type_refused():
    policy = make_complete_policy(GuarantorType.AVAL)
    session = make_session(make_result(one=policy), make_result(one=policy))
    request = GuarantorTypeChangeRequest(
        guarantor_type=GuarantorType.AVAL, avals=[_actor("aval@example.com")]
    )
    with pytest.raises(GuarantorChangeError, match="already uses"):
        await change_guarantor_type(session, broker(), POLICY_ID, request)


async def test_change_requires_matching_guarantors():
    policy = make_complete_policy(GuarantorType.NONE)
    session = make_session(make_result(one=policy), make_result(one=policy))
    request = GuarantorTypeChangeRequest(guarantor_type=GuarantorType.BOTH, joint_obligors=[])
    with pytest.raises(GuarantorChangeError, match="requires at least one Joint Obligor"):
        await change_guarantor_type(session, broker(), POLICY_ID, request)


async def test_change_refused_once_approved():
    policy = make_complete_policy(GuarantorType.NONE, status=PolicyStatus.APPROVED)
    session = make_session(make_result(one=policy), make_result(one=policy))
    request = GuarantorTypeChangeRequest(
        guarantor_type=GuarantorType.AVAL, avals=[_actor("aval@example.com")]
    )
    with pytest.raises(GuarantorChangeError, match="cannot change while the policy is APPROVED"):
        await change_guarantor_type(session, broker(), POLICY_ID, request)


# ---------------------------------------------------------------------------
# Investigation
# ---------------------------------------------------------------------------


async def test_rejected_verdict_needs_reason():
    session = make_session()
    with pytest.raises(InvestigationError, match="reason is required"):
        await complete_investigation(
            session, staff(), POLICY_ID, InvestigationVerdict.REJECTED, reason=" "
        )
    session.execute.assert_not_awaited()


async def test_rejected_verdict_moves_to_investigation_rejected():
    policy = make_complete_policy(
        status=PolicyStatus.UNDER_INVESTIGATION, investigation=make_investigation()
    )
    session = make_session(*[make_result(one=policy)] * 4)

    await complete_investigation(
        session,
        staff(),
        POLICY_ID,
        InvestigationVerdict.REJECTED,
        notes="Negative references",
        reason="Tenant income not verifiable",
        now=NOW,
    )

    assert policy.investigation.verdict == InvestigationVerdict.REJECTED
    assert policy.investigation.completed_by == "staff-sofia"
    assert policy.status == PolicyStatus.INVESTIGATION_REJECTED
    assert policy.rejection_reason == "Tenant income not verifiable"
    assert activity_actions(session) == ["investigation_completed", "status_changed"]


async def test_approved_verdict_with_verified_actors_goes_to_pending_approval():
    policy = make_complete_policy(
        status=PolicyStatus.UNDER_INVESTIGATION,
        verified=True,
        investigation=make_investigation(),
    )
    session = make_session(*[make_result(one=policy)] * 4)

    await complete_investigation(session, staff(), POLICY_ID, InvestigationVerdict.APPROVED)

    assert policy.status == PolicyStatus.PENDING_APPROVAL


async def test_approved_verdict_waits_for_verification():
    policy = make_complete_policy(
        status=PolicyStatus.UNDER_INVESTIGATION, investigation=make_investigation()
    )
    session = make_session(*[make_result(one=policy)] * 4)

    await complete_investigation(session, staff(), POLICY_ID, InvestigationVerdict.APPROVED)

    assert policy.investigation.verdict == InvestigationVerdict.APPROVED
    assert policy.status == PolicyStatus.UNDER_INVESTIGATION
    assert activity_actions(session) == ["investigation_completed"]
    session.commit.assert_awaited_once()


async def test_verdict_outside_investigation_refused():
    policy = make_complete_policy(status=PolicyStatus.COLLECTING_INFO)
    session = make_session(make_result(one=policy), make_result(one=policy))
    with pytest.raises(InvestigationError, match="UNDER_INVESTIGATION"):
        await complete_investigation(session, staff(), POLICY_ID, InvestigationVerdict.APPROVED)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_storage():
    storage = MagicMock()
    storage.build_contract_key.return_value = "policies/10/contracts/501-contract.pdf"
    storage.upload_file = AsyncMock(return_value="policies/10/contracts/501-contract.pdf")
    with patch("src.services.policy.get_storage_service", return_value=storage):
        yield storage


async def test_upload_contract_replaces_current(mock_storage):
    previous = make_contract(1)
    policy = make_complete_policy(status=PolicyStatus.APPROVED, contracts=[previous])
    session = make_session(make_result(one=policy), make_result(one=policy))

    contract = await upload_contract(
        session,
        staff(),
        POLICY_ID,
        filename="contract.pdf",
        content_type="application/pdf",
        file_data=b"%PDF",
    )

    assert isinstance(contract, Contract)
    assert contract.is_current is True
    assert contract.file_path == "policies/10/contracts/501-contract.pdf"
    assert previous.is_current is False
    mock_storage.build_contract_key.assert_called_once_with(POLICY_ID, 501, "contract.pdf")
    assert policy.contracts[-1] is contract
    assert policy.status == PolicyStatus.CONTRACT_PENDING
    assert activity_actions(session) == ["contract_uploaded", "status_changed"]
    moved = added_activities(session)[-1]
    assert moved.details == {"from": "APPROVED", "to": "CONTRACT_PENDING", "contract_id": 501}
    session.commit.assert_awaited_once()


async def test_first_contract_moves_approved_policy_to_contract_pending(mock_storage):
    policy = make_complete_policy(status=PolicyStatus.APPROVED)
    session = make_session(make_result(one=policy), make_result(one=policy))

    await upload_contract(
        session,
        staff(),
        POLICY_ID,
        filename="c.pdf",
        content_type="application/pdf",
        file_data=b"%PDF",
    )

    assert policy.status == PolicyStatus.CONTRACT_PENDING
    assert session.execute.await_count == 2


async def test_replacing_contract_while_pending_keeps_status(mock_storage):
    previous = make_contract(1)
    policy = make_complete_policy(status=PolicyStatus.CONTRACT_PENDING, contracts=[previous])
    session = make_session(make_result(one=policy), make_result(one=policy))

    await upload_contract(
        session,
        staff(),
        POLICY_ID,
        filename="contract-v2.pdf",
        content_type="application/pdf",
        file_data=b"%PDF",
    )

    assert policy.status == PolicyStatus.CONTRACT_PENDING
    assert previous.is_current is False
    assert activity_actions(session) == ["contract_uploaded"]


async def test_upload_contract_too_early(mock_storage):
    policy = make_complete_policy(status=PolicyStatus.UNDER_INVESTIGATION)
    session = make_session(make_result(one=policy), make_result(one=policy))
    with pytest.raises(ContractError, match="UNDER_INVESTIGATION"):
        await upload_contract(
            session,
            staff(),
            POLICY_ID,
            filename="contract.pdf",
            content_type="application/pdf",
            file_data=b"%PDF",
        )
    mock_storage.upload_file.assert_not_awaited()


async def test_mark_contract_signed():
    contract = make_contract()
    policy = make_complete_policy(status=PolicyStatus.CONTRACT_PENDING, contracts=[contract])
    session = make_session(*[make_result(one=policy)] * 3)

    await mark_contract_signed(session, staff(), POLICY_ID, now=NOW)

    assert policy.status == PolicyStatus.CONTRACT_SIGNED
    assert contract.signed_at == NOW


async def test_mark_contract_signed_from_approved_is_invalid():
    policy = make_complete_policy(status=PolicyStatus.APPROVED, contracts=[make_contract()])
    session = make_session(*[make_result(one=policy)] * 3)
    with pytest.raises(InvalidTransitionError):
        await mark_contract_signed(session, staff(), POLICY_ID)
