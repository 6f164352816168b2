# This project was developed with assistance from AI tools.
"""Persona factories for functional tests.

Each function returns a UserContext matching the DataScope built by
``core/auth.py:build_data_scope()`` for that role. Fixed user IDs
ensure cross-test consistency.
"""

from db.enums import UserRole

from src.schemas.auth import DataScope, UserContext

# Fixed IDs for cross-test referencing
ADMIN_USER_ID = "admin-user"
STAFF_USER_ID = "staff-sofia"
BROKER_USER_ID = "broker-ana"
BROKER_OTHER_USER_ID = "broker-diego"


def admin() -> UserContext:
    return UserContext(
        user_id=ADMIN_USER_ID,
        role=UserRole.ADMIN,
        email="admin@rent-guard.example.com",
        name="Admin User",
        data_scope=DataScope(full_pipeline=True),
    )


def staff() -> UserContext:
    return UserContext(
        user_id=STAFF_USER_ID,
        role=UserRole.STAFF,
        email="sofia@rent-guard.example.com",
        name="Sofia Navarro",
        data_scope=DataScope(full_pipeline=True),
    )


def broker() -> UserContext:
    return UserContext(
        user_id=BROKER_USER_ID,
        role=UserRole.BROKER,
        email="ana@brokers.example.com",
        name="Ana Broker",
        data_scope=DataScope(own_policies_only=True, user_id=BROKER_USER_ID),
    )


def broker_other() -> UserContext:
    return UserContext(
        user_id=BROKER_OTHER_USER_ID,
        role=UserRole.BROKER,
        email="diego@brokers.example.com",
        name="Diego Broker",
        data_scope=DataScope(own_policies_only=True, user_id=BROKER_OTHER_USER_ID),
    )
