# This project was developed with assistance from AI tools.
"""Admin endpoint schemas."""

from pydantic import BaseModel


class ExpirePoliciesResponse(BaseModel):
    """Result of an expiration run."""

    count: int
    policy_ids: list[int]
