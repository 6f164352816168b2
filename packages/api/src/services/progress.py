# This project was developed with assistance from AI tools.
"""Policy workflow progress.

Aggregates status, workflow step, actor completion and per-actor document
checklists into a single response for the policy detail page.
"""

import logging
from collections import defaultdict

from db.enums import ActorRole, PolicyStatus
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext
from ..schemas.progress import (
    ActorCompletionSummary,
    IncompleteActor,
    PolicyProgressResponse,
    WorkflowStep,
)
from .completion import evaluate_actor_completion, iter_active_actors
from .document_requirements import get_actor_document_status
from .documents import list_policy_documents
from .lifecycle import get_allowed_next_statuses
from .policy import get_policy

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    PolicyStatus.DRAFT: "Draft",
    PolicyStatus.COLLECTING_INFO: "Collecting information",
    PolicyStatus.UNDER_INVESTIGATION: "Under investigation",
    PolicyStatus.INVESTIGATION_REJECTED: "Investigation rejected",
    PolicyStatus.PENDING_APPROVAL: "Pending approval",
    PolicyStatus.APPROVED: "Approved",
    PolicyStatus.CONTRACT_PENDING: "Contract pending",
    PolicyStatus.CONTRACT_SIGNED: "Contract signed",
    PolicyStatus.ACTIVE: "Active",
    PolicyStatus.EXPIRED: "Expired",
    PolicyStatus.CANCELLED: "Cancelled",
}

# (name, description, statuses that place the policy on this step)
WORKFLOW_STEPS = (
    ("Creation", "Policy created", {PolicyStatus.DRAFT}),
    (
        "Information collection",
        "Collecting information from the actors",
        {PolicyStatus.COLLECTING_INFO},
    ),
    (
        "Investigation",
        "Background investigation in progress",
        {PolicyStatus.UNDER_INVESTIGATION, PolicyStatus.INVESTIGATION_REJECTED},
    ),
    (
        "Approval",
        "Waiting for approval",
        {PolicyStatus.PENDING_APPROVAL, PolicyStatus.APPROVED},
    ),
    (
        "Contract",
        "Contract generation and signature",
        {PolicyStatus.CONTRACT_PENDING, PolicyStatus.CONTRACT_SIGNED},
    ),
    ("Activation", "Policy active", {PolicyStatus.ACTIVE, PolicyStatus.EXPIRED}),
)

NEXT_ACTIONS = {
    PolicyStatus.DRAFT: "Send invitations to the actors",
    PolicyStatus.UNDER_INVESTIGATION: "Complete the investigation",
    PolicyStatus.INVESTIGATION_REJECTED: "Review and restart the investigation",
    PolicyStatus.PENDING_APPROVAL: "Approve or reject the policy",
    PolicyStatus.APPROVED: "Upload the contract",
    PolicyStatus.CONTRACT_PENDING: "Sign the contract",
    PolicyStatus.CONTRACT_SIGNED: "Activate the policy",
}


def _current_step_index(status: PolicyStatus) -> int | None:
    for index, (_, _, statuses) in enumerate(WORKFLOW_STEPS):
        if status in statuses:
            return index
    return None


def build_workflow_steps(status: PolicyStatus) -> tuple[list[WorkflowStep], int]:
    """Steps with completed/current/pending state, and percent progress.

    EXPIRED shows every step completed. CANCELLED has no current step.
    """
    status = PolicyStatus(status)
    current = _current_step_index(status)
    last = len(WORKFLOW_STEPS) - 1
    steps = []
    for index, (name, description, _) in enumerate(WORKFLOW_STEPS):
        if current is None:
            state = "pending"
        elif index < current or status == PolicyStatus.EXPIRED:
            state = "completed"
        elif index == current:
            state = "current"
        else:
            state = "pending"
        steps.append(WorkflowStep(name=name, description=description, status=state))
    progress = 0 if current is None else round(current / last * 100)
    return steps, progress


def next_actions(status: PolicyStatus, actors_complete: bool) -> list[str]:
    status = PolicyStatus(status)
    if status == PolicyStatus.COLLECTING_INFO:
        if actors_complete:
            return ["Start the investigation"]
        return ["Complete the actors' information"]
    action = NEXT_ACTIONS.get(status)
    return [action] if action else []


async def get_policy_progress(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
) -> PolicyProgressResponse | None:
    """Workflow summary for a policy, or None if it is not visible."""
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None

    status = PolicyStatus(policy.status)
    report = evaluate_actor_completion(policy)
    steps, progress = build_workflow_steps(status)

    documents_by_owner = defaultdict(list)
    for doc in await list_policy_documents(session, policy_id):
        documents_by_owner[(ActorRole(doc.actor_role), doc.actor_id)].append(doc)

    documents = [
        get_actor_document_status(role, actor, documents_by_owner[(role, actor.id)])
        for role, actor in iter_active_actors(policy)
    ]

    def _refs(refs):
        return [
            IncompleteActor(role=r.role, actor_id=r.actor_id, display_name=r.display_name)
            for r in refs
        ]

    return PolicyProgressResponse(
        policy_id=policy.id,
        status=status.value,
        status_label=STATUS_LABELS[status],
        progress=progress,
        steps=steps,
        next_actions=next_actions(status, report.is_complete),
        allowed_next_statuses=[s.value for s in get_allowed_next_statuses(status)],
        actor_completion=ActorCompletionSummary(
            is_complete=report.is_complete,
            missing_roles=report.missing_roles,
            incomplete_actors=_refs(report.incomplete_actors),
            completed_actors=_refs(report.completed_actors),
        ),
        documents=documents,
    )
