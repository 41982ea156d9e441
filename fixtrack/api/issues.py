import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from fixtrack.api.deps import get_workflow
from fixtrack.core.fsm import Status, status_color, status_display_name, workflow_stage
from fixtrack.core.workflow import IssueWorkflowEngine
from fixtrack.schemas.issue import (
    IssueCreate,
    IssueResponse,
    NextStatusesResponse,
    PriorityUpdate,
    ThreadUpdate,
)

router = APIRouter(prefix="/issues", tags=["Issues"])


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
def report_issue(issue_in: IssueCreate, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    """
    Report a new issue. It always starts at `open`.
    Issues reported through a registered channel inherit the channel's project.
    """
    return workflow.report_issue(
        title=issue_in.title,
        description=issue_in.description,
        reporter_id=issue_in.reporter_id,
        project_id=issue_in.project_id,
        channel_id=issue_in.channel_id,
        image_url=issue_in.image_url,
    )


@router.get("", response_model=List[IssueResponse])
def list_issues(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    status: Optional[Status] = None,
    channel_id: Optional[uuid.UUID] = None,
    workflow: IssueWorkflowEngine = Depends(get_workflow),
):
    """
    Retrieve issues, optionally filtered by status or by channel.
    """
    if status is not None:
        return workflow.issues_by_status(status, skip, limit)
    if channel_id is not None:
        return workflow.issues_by_channel(channel_id, skip, limit)
    return workflow.list_issues(skip, limit)


@router.get("/search", response_model=List[IssueResponse])
def search_issues(
    prefix: str = Query(..., min_length=1, description="Leading characters of the issue id."),
    channel_id: Optional[uuid.UUID] = None,
    workflow: IssueWorkflowEngine = Depends(get_workflow),
):
    return workflow.search_by_partial_id(prefix, channel_id)


@router.get("/{issue_id}", response_model=IssueResponse)
def get_issue(issue_id: uuid.UUID, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return workflow.get_issue(issue_id)


@router.get("/{issue_id}/next-statuses", response_model=NextStatusesResponse)
def get_next_statuses(issue_id: uuid.UUID, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    issue = workflow.get_issue(issue_id)
    return NextStatusesResponse(
        issue_id=issue.id,
        status=issue.status,
        display_name=status_display_name(issue.status),
        color=status_color(issue.status),
        workflow_stage=workflow_stage(issue.status),
        next_statuses=list(workflow.next_possible_statuses(issue)),
    )


@router.patch("/{issue_id}/priority", response_model=IssueResponse)
def update_priority(
    issue_id: uuid.UUID,
    update: PriorityUpdate,
    workflow: IssueWorkflowEngine = Depends(get_workflow),
):
    """
    Change an issue's priority. Status and history are untouched.
    """
    issue = workflow.get_issue(issue_id)
    return workflow.update_priority(issue, update.priority)


@router.patch("/{issue_id}/thread", response_model=IssueResponse)
def update_thread(
    issue_id: uuid.UUID,
    update: ThreadUpdate,
    workflow: IssueWorkflowEngine = Depends(get_workflow),
):
    issue = workflow.get_issue(issue_id)
    return workflow.update_thread_info(issue, update.thread_id, update.message_id)
