# This project was developed with assistance from AI tools.
"""Tests for the document validation gate."""

import pytest
from db.enums import ValidationStatus

from src.services.document_validation import (
    DocumentValidationError,
    check_validation_request,
    validate_document,
)
from tests.factories import NOW, added_activities, make_document, make_result, make_session


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_rejection_without_reason_is_refused(reason):
    with pytest.raises(DocumentValidationError, match="rejection reason is required"):
        check_validation_request(ValidationStatus.REJECTED, reason)


def test_rejection_reason_is_trimmed():
    assert check_validation_request(ValidationStatus.REJECTED, "  blurry scan ") == "blurry scan"


def test_non_rejection_drops_reason():
    assert check_validation_request(ValidationStatus.APPROVED, "looks fine") is None


async def test_blank_rejection_fails_before_any_query():
    session = make_session()
    with pytest.raises(DocumentValidationError):
        await validate_document(session, 501, ValidationStatus.REJECTED, " ", "staff-sofia")
    session.execute.assert_not_awaited()
    session.commit.assert_not_awaited()


async def test_unknown_document_returns_none():
    session = make_session(make_result(one=None))
    assert await validate_document(session, 999, ValidationStatus.APPROVED, None, "staff-sofia") is None
    session.commit.assert_not_awaited()


async def test_approve_pending_document():
    doc = make_document()
    session = make_session(make_result(one=doc))

    result = await validate_document(
        session, doc.id, ValidationStatus.APPROVED, None, "staff-sofia", now=NOW
    )

    assert result is doc
    assert doc.validation_status == ValidationStatus.APPROVED
    assert doc.validated_by == "staff-sofia"
    assert doc.validated_at == NOW
    assert doc.rejection_reason is None
    [entry] = added_activities(session)
    assert entry.action == "document_approved"
    assert entry.details["actor_role"] == "tenant"
    session.commit.assert_awaited_once()
    # only the document lookup; the policy and actor are never loaded
    assert session.execute.await_count == 1


async def test_reversing_a_decision_logs_the_change():
    doc = make_document(status=ValidationStatus.APPROVED)
    session = make_session(make_result(one=doc))

    await validate_document(
        session, doc.id, ValidationStatus.REJECTED, "Expired ID", "staff-sofia", now=NOW
    )

    assert doc.validation_status == ValidationStatus.REJECTED
    assert doc.rejection_reason == "Expired ID"
    changed, rejected = added_activities(session)
    assert changed.action == "document_validation_changed"
    assert changed.details["from"] == "APPROVED"
    assert changed.details["to"] == "REJECTED"
    assert rejected.action == "document_rejected"
    assert rejected.details["rejection_reason"] == "Expired ID"


async def test_approving_a_rejected_document_clears_reason():
    doc = make_document(status=ValidationStatus.REJECTED)
    doc.rejection_reason = "Blurry"
    session = make_session(make_result(one=doc))

    await validate_document(session, doc.id, ValidationStatus.APPROVED, None, "staff-sofia")

    assert doc.rejection_reason is None
