# This project was developed with assistance from AI tools.
"""Policy workflow progress schemas."""

from typing import Literal

from db.enums import ActorRole
from pydantic import BaseModel

from .document import ActorDocumentStatus


class WorkflowStep(BaseModel):
    name: str
    description: str
    status: Literal["completed", "current", "pending"]


class IncompleteActor(BaseModel):
    role: ActorRole
    actor_id: int
    display_name: str


class ActorCompletionSummary(BaseModel):
    """Result of the actor completion predicate, with the reasons."""

    is_complete: bool
    missing_roles: list[ActorRole]
    incomplete_actors: list[IncompleteActor]
    completed_actors: list[IncompleteActor]


class PolicyProgressResponse(BaseModel):
    """Aggregated workflow summary for a policy."""

    policy_id: int
    status: str
    status_label: str
    progress: int
    steps: list[WorkflowStep]
    next_actions: list[str]
    allowed_next_statuses: list[str]
    actor_completion: ActorCompletionSummary
    documents: list[ActorDocumentStatus]
