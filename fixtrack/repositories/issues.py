import uuid
from typing import List, Optional

from sqlalchemy import select

from fixtrack.core.fsm import Status
from fixtrack.models import Issue
from fixtrack.repositories.base import SqlRepository, storage_errors

ID_SCAN_BATCH = 500


def _page(stmt, offset: int, limit: Optional[int]):
    stmt = stmt.order_by(Issue.created_at.desc()).offset(offset)
    return stmt if limit is None else stmt.limit(limit)


class SqlIssueRepository(SqlRepository):
    def create(self, issue: Issue) -> Issue:
        return self._add(issue, "create issue")

    def get_by_id(self, issue_id: uuid.UUID, for_update: bool = False) -> Optional[Issue]:
        """
        Load one issue. With `for_update` the row is re-read from the database
        even if it is already in the session, and locked where the dialect
        supports SELECT ... FOR UPDATE.
        """
        stmt = select(Issue).where(Issue.id == issue_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        with storage_errors("get issue", issue_id):
            return self.db.execute(stmt).scalar_one_or_none()

    def get_by_status(self, status: Status, offset: int = 0, limit: Optional[int] = None) -> List[Issue]:
        stmt = _page(select(Issue).where(Issue.status == status), offset, limit)
        with storage_errors("get issues by status"):
            return list(self.db.execute(stmt).scalars())

    def get_by_channel(self, channel_id: uuid.UUID, offset: int = 0, limit: Optional[int] = None) -> List[Issue]:
        stmt = _page(select(Issue).where(Issue.channel_id == channel_id), offset, limit)
        with storage_errors("get issues by channel"):
            return list(self.db.execute(stmt).scalars())

    def update(self, issue: Issue) -> Issue:
        # version_id_col turns this flush into UPDATE ... WHERE version = :seen
        with storage_errors("update issue", issue.id):
            self.db.add(issue)
            self.db.flush()
        return issue

    def list(self, offset: int = 0, limit: Optional[int] = 100) -> List[Issue]:
        stmt = _page(select(Issue), offset, limit)
        with storage_errors("list issues"):
            return list(self.db.execute(stmt).scalars())

    def ids_with_prefix(self, prefix: str, channel_id: Optional[uuid.UUID] = None) -> List[uuid.UUID]:
        """Ids whose canonical string form starts with `prefix`, scanned in batches."""
        stmt = select(Issue.id).execution_options(yield_per=ID_SCAN_BATCH)
        if channel_id is not None:
            stmt = stmt.where(Issue.channel_id == channel_id)
        with storage_errors("scan issue ids"):
            return [issue_id for issue_id in self.db.execute(stmt).scalars() if str(issue_id).startswith(prefix)]

    def get_many(self, issue_ids: List[uuid.UUID]) -> List[Issue]:
        if not issue_ids:
            return []
        stmt = select(Issue).where(Issue.id.in_(issue_ids)).order_by(Issue.created_at.desc())
        with storage_errors("get issues"):
            return list(self.db.execute(stmt).scalars())
