# This project was developed with assistance from AI tools.
"""Policy activity log schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PolicyActivityResponse(BaseModel):
    """Single activity log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    action: str
    description: str
    details: dict | None = None
    performed_by_type: str
    performed_by_id: str | None = None
    ip_address: str | None = None
    created_at: datetime


class PolicyActivityListResponse(BaseModel):
    policy_id: int
    count: int
    activities: list[PolicyActivityResponse]
