import uuid
from typing import List, Optional

from sqlalchemy import delete, select

from fixtrack.core.errors import AssigneeNotFound
from fixtrack.core.fsm import Role
from fixtrack.models import IssueAssignee
from fixtrack.repositories.base import SqlRepository, storage_errors


class SqlAssigneeRepository(SqlRepository):
    def create(self, assignee: IssueAssignee) -> IssueAssignee:
        return self._add(assignee, "create issue assignee")

    def delete(self, assignee_id: uuid.UUID) -> None:
        with storage_errors("delete issue assignee"):
            result = self.db.execute(delete(IssueAssignee).where(IssueAssignee.id == assignee_id))
        if result.rowcount == 0:
            raise AssigneeNotFound(assignee_id)

    def delete_all_for_issue(self, issue_id: uuid.UUID) -> int:
        with storage_errors("delete issue assignees", issue_id):
            result = self.db.execute(delete(IssueAssignee).where(IssueAssignee.issue_id == issue_id))
        return result.rowcount

    def find(self, issue_id: uuid.UUID, user_id: uuid.UUID, role: Role) -> Optional[IssueAssignee]:
        stmt = select(IssueAssignee).where(
            IssueAssignee.issue_id == issue_id,
            IssueAssignee.user_id == user_id,
            IssueAssignee.role == role,
        )
        with storage_errors("find issue assignee", issue_id):
            return self.db.execute(stmt).scalar_one_or_none()

    def list_for_issue(self, issue_id: uuid.UUID) -> List[IssueAssignee]:
        stmt = (
            select(IssueAssignee)
            .where(IssueAssignee.issue_id == issue_id)
            .order_by(IssueAssignee.assigned_at.asc())
        )
        with storage_errors("list assignees for issue", issue_id):
            return list(self.db.execute(stmt).scalars())

    def list_for_user(self, user_id: uuid.UUID) -> List[IssueAssignee]:
        stmt = (
            select(IssueAssignee)
            .where(IssueAssignee.user_id == user_id)
            .order_by(IssueAssignee.assigned_at.desc())
        )
        with storage_errors("list assignments for user"):
            return list(self.db.execute(stmt).scalars())

    def list_for_issue_and_role(self, issue_id: uuid.UUID, role: Role) -> List[IssueAssignee]:
        stmt = (
            select(IssueAssignee)
            .where(IssueAssignee.issue_id == issue_id, IssueAssignee.role == role)
            .order_by(IssueAssignee.assigned_at.asc())
        )
        with storage_errors("list assignees for issue and role", issue_id):
            return list(self.db.execute(stmt).scalars())
