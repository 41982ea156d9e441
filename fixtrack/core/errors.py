"""
Typed failures raised by the workflow core.

Every operation reports failure by raising one of these. Callers branch on
the class; the HTTP adapter maps each class to a status code.
"""
from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for every failure surfaced by the core."""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    entity = "record"

    def __init__(self, identifier: Any):
        self.identifier = identifier
        super().__init__(f"{self.entity} not found: {identifier}")


class IssueNotFound(NotFoundError):
    entity = "issue"


class UserNotFound(NotFoundError):
    entity = "user"


class AssigneeNotFound(NotFoundError):
    entity = "assignee"


class CustomerNotFound(NotFoundError):
    entity = "customer"


class ProjectNotFound(NotFoundError):
    entity = "project"


class ChannelNotFound(NotFoundError):
    entity = "channel"


class InvalidTransition(WorkflowError):
    def __init__(self, from_status: Optional[str], to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Transition from {from_status} to {to_status} is not permitted.")


class InvalidPriority(WorkflowError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"invalid priority: {value!r}")


class InvalidRole(WorkflowError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"invalid assignee role: {value!r}")


class ValidationFailed(WorkflowError):
    pass


class AlreadyExists(WorkflowError):
    pass


class ConcurrentModification(WorkflowError):
    """The issue changed between read and write. Re-fetch and try again."""

    retryable = True

    def __init__(self, issue_id: Any, message: Optional[str] = None):
        self.issue_id = issue_id
        super().__init__(message or f"issue {issue_id} was modified concurrently")


class OperationCancelled(WorkflowError):
    pass


class StorageFailure(WorkflowError):
    """Opaque persistence failure; the driver exception is kept as __cause__."""
