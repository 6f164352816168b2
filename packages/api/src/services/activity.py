# This project was developed with assistance from AI tools.
"""Policy activity log.

Append-only: entries are inserted and read, never updated or deleted. The
database enforces the same rule with a trigger.
"""

import logging

from db import PolicyActivity
from db.enums import PerformedByType, UserRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def performer_type(user) -> PerformedByType:
    """Activity performer type for an authenticated staff or broker user."""
    return PerformedByType.ADMIN if user.role == UserRole.ADMIN else PerformedByType.USER


async def log_activity(
    session: AsyncSession,
    *,
    policy_id: int,
    action: str,
    description: str,
    details: dict | None = None,
    performed_by_type: PerformedByType | str = PerformedByType.SYSTEM,
    performed_by_id: str | None = None,
    ip_address: str | None = None,
) -> PolicyActivity:
    """Add one activity entry to the current unit of work.

    Args:
        session: Database session. The caller owns the commit.
        policy_id: Policy the entry belongs to.
        action: Machine-readable action key (e.g. 'status_changed').
        description: Human-readable summary shown in the policy timeline.
        details: JSON-serializable payload.
        performed_by_type: 'actor', 'admin', 'system' or 'user'.
        performed_by_id: Id of whoever performed the action, if known.
        ip_address: Caller IP, if the action came from a request.
    """
    entry = PolicyActivity(
        policy_id=policy_id,
        action=action,
        description=description,
        details=details,
        performed_by_type=PerformedByType(performed_by_type).value,
        performed_by_id=performed_by_id,
        ip_address=ip_address,
    )
    session.add(entry)
    await session.flush()
    logger.debug("Activity %s logged for policy %s", action, policy_id)
    return entry


async def list_activities(
    session: AsyncSession,
    policy_id: int,
    *,
    action: str | None = None,
    limit: int = 200,
) -> list[PolicyActivity]:
    """Return a policy's activity entries, oldest first."""
    stmt = select(PolicyActivity).where(PolicyActivity.policy_id == policy_id)
    if action is not None:
        stmt = stmt.where(PolicyActivity.action == action)
    stmt = stmt.order_by(PolicyActivity.created_at.asc(), PolicyActivity.id.asc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
