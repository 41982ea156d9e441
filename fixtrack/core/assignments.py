import logging
import uuid
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from fixtrack.core.config import settings
from fixtrack.core.db import transaction, utcnow
from fixtrack.core.errors import AssigneeNotFound, InvalidRole, IssueNotFound, UserNotFound, WorkflowError
from fixtrack.core.fsm import Role
from fixtrack.core.locks import IssueLockPool, issue_locks
from fixtrack.models import IssueAssignee
from fixtrack.repositories import SqlAssigneeRepository, SqlIssueRepository, SqlUserRepository
from fixtrack.repositories.interfaces import AssigneeRepository, IssueRepository, UserRepository

logger = logging.getLogger(__name__)


def coerce_role(value: Any) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (ValueError, TypeError):
        raise InvalidRole(value) from None


class AssignmentRegistry:
    """Role-tagged links between users and issues (dev, qa, reviewer, other)."""

    def __init__(
        self,
        db: Session,
        assignees: Optional[AssigneeRepository] = None,
        users: Optional[UserRepository] = None,
        issues: Optional[IssueRepository] = None,
        locks: Optional[IssueLockPool] = None,
        lock_timeout: Optional[float] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.assignees = assignees or SqlAssigneeRepository(db)
        self.users = users or SqlUserRepository(db)
        self.issues = issues or SqlIssueRepository(db)
        self.locks = locks if locks is not None else issue_locks
        self.lock_timeout = settings.ISSUE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self.clock = clock

    def assign(self, issue_id: uuid.UUID, user_id: uuid.UUID, role: Any) -> IssueAssignee:
        """
        Give `user_id` the `role` on an issue.
        Assigning the same (issue, user, role) again returns the existing record.
        The lookup and insert run under the issue lock, so concurrent repeats
        all get that one record.
        """
        role = coerce_role(role)

        with self.locks.hold(issue_id, timeout=self.lock_timeout), transaction(self.db):
            if self.users.get_by_id(user_id) is None:
                raise UserNotFound(user_id)
            if self.issues.get_by_id(issue_id) is None:
                raise IssueNotFound(issue_id)

            existing = self.assignees.find(issue_id, user_id, role)
            if existing is not None:
                logger.debug("User %s already holds %s on issue %s", user_id, role.value, issue_id)
                return existing

            assignee = IssueAssignee(
                id=uuid.uuid4(),
                issue_id=issue_id,
                user_id=user_id,
                role=role,
                assigned_at=self.clock(),
            )
            self.assignees.create(assignee)

        logger.info("Assigned user %s to issue %s as %s", user_id, issue_id, role.value)
        return assignee

    def assign_by_platform_id(self, issue_id: uuid.UUID, platform_user_id: str, role: Any) -> IssueAssignee:
        role = coerce_role(role)
        user = self.users.get_by_platform_id(platform_user_id)
        if user is None:
            raise UserNotFound(platform_user_id)
        return self.assign(issue_id, user.id, role)

    def unassign(self, issue_id: uuid.UUID, user_id: uuid.UUID, role: Any) -> None:
        role = coerce_role(role)
        with transaction(self.db):
            existing = self.assignees.find(issue_id, user_id, role)
            if existing is None:
                raise AssigneeNotFound(f"{issue_id}/{user_id}/{role.value}")
            self.assignees.delete(existing.id)
        logger.info("Unassigned user %s (%s) from issue %s", user_id, role.value, issue_id)

    def unassign_all(self, issue_id: uuid.UUID) -> int:
        """
        Remove every assignment on an issue, one transaction per record.
        A record that fails to delete is logged and skipped; the return value
        counts only the deletions that went through.
        """
        assignment_ids = [a.id for a in self.assignees.list_for_issue(issue_id)]
        removed = 0
        for assignment_id in assignment_ids:
            try:
                with transaction(self.db):
                    self.assignees.delete(assignment_id)
            except WorkflowError as exc:
                logger.warning("Failed to delete assignment %s on issue %s: %s", assignment_id, issue_id, exc)
                continue
            removed += 1

        logger.info("Removed %d of %d assignments from issue %s", removed, len(assignment_ids), issue_id)
        return removed

    def list_for_issue(self, issue_id: uuid.UUID) -> List[IssueAssignee]:
        return self.assignees.list_for_issue(issue_id)

    def list_for_user(self, user_id: uuid.UUID) -> List[IssueAssignee]:
        return self.assignees.list_for_user(user_id)

    def list_for_issue_and_role(self, issue_id: uuid.UUID, role: Any) -> List[IssueAssignee]:
        return self.assignees.list_for_issue_and_role(issue_id, coerce_role(role))

    def is_assigned(self, issue_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return any(a.user_id == user_id for a in self.assignees.list_for_issue(issue_id))

    def is_assigned_with_role(self, issue_id: uuid.UUID, user_id: uuid.UUID, role: Any) -> bool:
        return self.assignees.find(issue_id, user_id, coerce_role(role)) is not None
