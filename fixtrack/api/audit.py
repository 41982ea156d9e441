import uuid
from typing import List

from fastapi import APIRouter, Depends, Query

from fixtrack.api.deps import get_status_log, get_workflow
from fixtrack.core.status_log import StatusLog
from fixtrack.core.workflow import IssueWorkflowEngine
from fixtrack.schemas.issue import StatusLogResponse

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=List[StatusLogResponse])
def get_recent_status_changes(
    limit: int = Query(50, ge=1, le=1000),
    status_log: StatusLog = Depends(get_status_log),
):
    """
    Retrieve the most recent status changes across all issues, newest first.
    """
    return status_log.recent_across_all_issues(limit)


@router.get("/issues/{issue_id}", response_model=List[StatusLogResponse])
def get_issue_history(issue_id: uuid.UUID, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    """
    Retrieve the full status history of one issue, newest first.
    """
    return workflow.history(issue_id)
