import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from fixtrack.api.deps import get_registry
from fixtrack.core.assignments import AssignmentRegistry
from fixtrack.schemas.issue import AssigneeCreate, AssigneeResponse, UnassignAllResponse

router = APIRouter(tags=["Assignees"])


@router.get("/issues/{issue_id}/assignees", response_model=List[AssigneeResponse])
def list_assignees(
    issue_id: uuid.UUID,
    role: Optional[str] = None,
    registry: AssignmentRegistry = Depends(get_registry),
):
    """
    Assignees of an issue, oldest assignment first, optionally for one role.
    """
    if role is not None:
        return registry.list_for_issue_and_role(issue_id, role)
    return registry.list_for_issue(issue_id)


@router.post("/issues/{issue_id}/assignees", response_model=AssigneeResponse, status_code=status.HTTP_201_CREATED)
def assign_user(
    issue_id: uuid.UUID,
    assignee_in: AssigneeCreate,
    registry: AssignmentRegistry = Depends(get_registry),
):
    """
    Give a user a role on an issue without changing its status.
    Repeating the same assignment returns the existing record.
    """
    return registry.assign(issue_id, assignee_in.user_id, assignee_in.role)


@router.delete("/issues/{issue_id}/assignees/{user_id}/{role}", status_code=status.HTTP_204_NO_CONTENT)
def unassign_user(
    issue_id: uuid.UUID,
    user_id: uuid.UUID,
    role: str,
    registry: AssignmentRegistry = Depends(get_registry),
):
    registry.unassign(issue_id, user_id, role)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/issues/{issue_id}/assignees", response_model=UnassignAllResponse)
def unassign_all(issue_id: uuid.UUID, registry: AssignmentRegistry = Depends(get_registry)):
    return UnassignAllResponse(issue_id=issue_id, removed=registry.unassign_all(issue_id))


@router.get("/users/{user_id}/assignments", response_model=List[AssigneeResponse])
def list_user_assignments(user_id: uuid.UUID, registry: AssignmentRegistry = Depends(get_registry)):
    """
    A user's assignments across issues, most recent first.
    """
    return registry.list_for_user(user_id)
