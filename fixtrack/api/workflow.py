import uuid

from fastapi import APIRouter, Depends

from fixtrack.api.deps import get_workflow
from fixtrack.core.workflow import IssueWorkflowEngine, TransitionResult
from fixtrack.schemas.issue import (
    ActorRequest,
    AssignRequest,
    IssueResponse,
    RejectRequest,
    ResolveRequest,
    StatusLogResponse,
    TransitionRequest,
    TransitionResponse,
    VerifyRequest,
)

router = APIRouter(prefix="/issues/{issue_id}", tags=["Workflow"])


def _respond(result: TransitionResult) -> TransitionResponse:
    issue, entry = result
    return TransitionResponse(
        issue=IssueResponse.model_validate(issue),
        log_entry=StatusLogResponse.model_validate(entry),
    )


@router.post("/transitions", response_model=TransitionResponse)
def request_transition(
    issue_id: uuid.UUID,
    request: TransitionRequest,
    workflow: IssueWorkflowEngine = Depends(get_workflow),
):
    """
    Move an issue to another status according to the workflow table.
    Rejected transitions answer 409 with the current and attempted status.
    """
    issue = workflow.get_issue(issue_id)
    return _respond(workflow.request_transition(issue, request.new_status, request.actor, reason=request.reason))


@router.post("/close", response_model=TransitionResponse)
def close_issue(issue_id: uuid.UUID, request: ActorRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.close(workflow.get_issue(issue_id), request.actor))


@router.post("/reopen", response_model=TransitionResponse)
def reopen_issue(issue_id: uuid.UUID, request: ActorRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    """
    Bring an issue back to open. Closed issues pass through `reopened`.
    """
    return _respond(workflow.reopen(workflow.get_issue(issue_id), request.actor))


@router.post("/assign-dev", response_model=TransitionResponse)
def assign_developer(issue_id: uuid.UUID, request: AssignRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.assign_developer(workflow.get_issue(issue_id), request.user_id, request.actor))


@router.post("/start", response_model=TransitionResponse)
def start_work(issue_id: uuid.UUID, request: ActorRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.start_work(workflow.get_issue(issue_id), request.actor))


@router.post("/resolve", response_model=TransitionResponse)
def resolve_issue(issue_id: uuid.UUID, request: ResolveRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    """
    Record the developer's resolution (cause and action) and move the issue to `resolved`.
    """
    issue = workflow.get_issue(issue_id)
    return _respond(workflow.resolve(issue, request.resolution_cause, request.resolution_action, request.actor))


@router.post("/assign-qa", response_model=TransitionResponse)
def assign_qa(issue_id: uuid.UUID, request: AssignRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.assign_qa(workflow.get_issue(issue_id), request.user_id, request.actor))


@router.post("/verify", response_model=TransitionResponse)
def verify_issue(issue_id: uuid.UUID, request: VerifyRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.verify(workflow.get_issue(issue_id), request.notes, request.actor))


@router.post("/reject", response_model=TransitionResponse)
def reject_issue(issue_id: uuid.UUID, request: RejectRequest, workflow: IssueWorkflowEngine = Depends(get_workflow)):
    return _respond(workflow.reject(workflow.get_issue(issue_id), request.reason, request.actor))
