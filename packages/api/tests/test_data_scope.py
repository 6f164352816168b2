# This project was developed with assistance from AI tools.
"""Unit tests for data scope construction and query filtering.

Brokers see the policies they created; staff and admin see every policy.
"""

from db import ActorDocument, Policy
from db.enums import UserRole
from sqlalchemy import select

from src.core.auth import build_data_scope
from src.schemas.auth import DataScope
from src.services.scope import apply_data_scope
from tests.functional.personas import admin, broker, staff


def _sql(stmt) -> str:
    return str(stmt.compile(compile_kwargs={"literal_binds": True}))


def test_broker_scope_own_policies():
    scope = build_data_scope(UserRole.BROKER, "broker-123")
    assert scope.own_policies_only is True
    assert scope.user_id == "broker-123"
    assert scope.full_pipeline is False


def test_staff_scope_full_pipeline():
    scope = build_data_scope(UserRole.STAFF, "staff-1")
    assert scope.full_pipeline is True
    assert scope.own_policies_only is False


def test_admin_scope_full_pipeline():
    assert build_data_scope(UserRole.ADMIN, "admin-1").full_pipeline is True


def test_unknown_role_minimal_access():
    scope = build_data_scope("auditor", "someone")
    assert scope == DataScope()


def test_full_pipeline_leaves_query_untouched():
    stmt = select(Policy)
    assert apply_data_scope(stmt, staff().data_scope, staff()) is stmt
    assert apply_data_scope(stmt, admin().data_scope, admin()) is stmt


def test_broker_filter_on_created_by():
    user = broker()
    sql = _sql(apply_data_scope(select(Policy), user.data_scope, user))
    assert f"policies.created_by = '{user.user_id}'" in sql


def test_broker_filter_joins_through_policy():
    user = broker()
    stmt = apply_data_scope(
        select(ActorDocument),
        user.data_scope,
        user,
        join_to_policy=ActorDocument.policy_id == Policy.id,
    )
    sql = _sql(stmt)
    assert "JOIN policies ON actor_documents.policy_id = policies.id" in sql
    assert "policies.created_by" in sql


def test_empty_scope_sees_nothing():
    user = broker()
    sql = _sql(apply_data_scope(select(Policy), DataScope(), user))
    assert "policies.id IS NULL" in sql
