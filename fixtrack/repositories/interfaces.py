"""
Persistence interfaces consumed by the workflow core.

The SQLAlchemy classes in this package implement them; tests and other
storage backends may supply their own. Implementations flush but never
commit (commit belongs to `fixtrack.core.db.transaction`) and raise
`StorageFailure` / `ConcurrentModification` instead of driver errors.
"""
import uuid
from typing import List, Optional, Protocol

from fixtrack.core.fsm import Role, Status
from fixtrack.models import Channel, Customer, Issue, IssueAssignee, IssueStatusLog, Project, User


class IssueRepository(Protocol):
    def create(self, issue: Issue) -> Issue: ...

    def get_by_id(self, issue_id: uuid.UUID, for_update: bool = False) -> Optional[Issue]: ...

    def get_by_status(self, status: Status, offset: int = 0, limit: Optional[int] = None) -> List[Issue]: ...

    def get_by_channel(self, channel_id: uuid.UUID, offset: int = 0, limit: Optional[int] = None) -> List[Issue]: ...

    def update(self, issue: Issue) -> Issue: ...

    def list(self, offset: int = 0, limit: Optional[int] = 100) -> List[Issue]: ...

    def ids_with_prefix(self, prefix: str, channel_id: Optional[uuid.UUID] = None) -> List[uuid.UUID]: ...

    def get_many(self, issue_ids: List[uuid.UUID]) -> List[Issue]: ...


class StatusLogRepository(Protocol):
    def append(self, entry: IssueStatusLog) -> IssueStatusLog: ...

    def last_sequence(self, issue_id: uuid.UUID) -> int: ...

    def history_for(self, issue_id: uuid.UUID) -> List[IssueStatusLog]: ...

    def recent_across_all_issues(self, limit: int) -> List[IssueStatusLog]: ...


class AssigneeRepository(Protocol):
    def create(self, assignee: IssueAssignee) -> IssueAssignee: ...

    def delete(self, assignee_id: uuid.UUID) -> None: ...

    def delete_all_for_issue(self, issue_id: uuid.UUID) -> int: ...

    def find(self, issue_id: uuid.UUID, user_id: uuid.UUID, role: Role) -> Optional[IssueAssignee]: ...

    def list_for_issue(self, issue_id: uuid.UUID) -> List[IssueAssignee]: ...

    def list_for_user(self, user_id: uuid.UUID) -> List[IssueAssignee]: ...

    def list_for_issue_and_role(self, issue_id: uuid.UUID, role: Role) -> List[IssueAssignee]: ...


class UserRepository(Protocol):
    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    def get_by_platform_id(self, platform_user_id: str) -> Optional[User]: ...

    def create(self, user: User) -> User: ...


class CustomerRepository(Protocol):
    def create(self, customer: Customer) -> Customer: ...

    def get_by_id(self, customer_id: uuid.UUID) -> Optional[Customer]: ...

    def get_by_name(self, name: str) -> Optional[Customer]: ...


class ProjectRepository(Protocol):
    def create(self, project: Project) -> Project: ...

    def get_by_id(self, project_id: uuid.UUID) -> Optional[Project]: ...

    def get_by_customer_and_name(self, customer_id: uuid.UUID, name: str) -> Optional[Project]: ...


class ChannelRepository(Protocol):
    def create(self, channel: Channel) -> Channel: ...

    def get_by_id(self, channel_id: uuid.UUID) -> Optional[Channel]: ...

    def get_by_platform_id(self, platform_channel_id: str) -> Optional[Channel]: ...

    def update(self, channel: Channel) -> Channel: ...
