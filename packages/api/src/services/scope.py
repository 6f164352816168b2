# This project was developed with assistance from AI tools.
"""Shared data scope filtering for service queries.

Centralizes the DataScope -> SQL WHERE logic so that each resource service
applies the same rules. Brokers only see the policies they created; staff
and admin see every policy.
"""

from db import Policy

from ..schemas.auth import DataScope, UserContext


def apply_data_scope(stmt, scope: DataScope, user: UserContext, *, join_to_policy=None):
    """Apply data scope filtering to a SQLAlchemy query.

    Args:
        stmt: A SQLAlchemy select statement.
        scope: The caller's DataScope.
        user: The caller's UserContext.
        join_to_policy: Expression used to join from the queried entity to
            ``Policy`` (e.g. ``ActorDocument.policy_id == Policy.id``).
            Pass ``None`` when querying Policy directly.

    Returns:
        The filtered statement.
    """
    if scope.full_pipeline:
        return stmt
    if join_to_policy is not None:
        stmt = stmt.join(Policy, join_to_policy)
    if scope.own_policies_only and scope.user_id:
        return stmt.where(Policy.created_by == scope.user_id)
    # no recognized scope -- see nothing
    return stmt.where(Policy.id.is_(None))
