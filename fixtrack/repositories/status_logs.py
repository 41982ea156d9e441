import uuid
from typing import List

from sqlalchemy import func, select

from fixtrack.models import IssueStatusLog
from fixtrack.repositories.base import SqlRepository, storage_errors


class SqlStatusLogRepository(SqlRepository):
    def append(self, entry: IssueStatusLog) -> IssueStatusLog:
        with storage_errors("append status log", entry.issue_id):
            self.db.add(entry)
            self.db.flush()
        return entry

    def last_sequence(self, issue_id: uuid.UUID) -> int:
        stmt = select(func.max(IssueStatusLog.sequence)).where(IssueStatusLog.issue_id == issue_id)
        with storage_errors("read status log sequence", issue_id):
            return self.db.execute(stmt).scalar() or 0

    def history_for(self, issue_id: uuid.UUID) -> List[IssueStatusLog]:
        stmt = (
            select(IssueStatusLog)
            .where(IssueStatusLog.issue_id == issue_id)
            .order_by(IssueStatusLog.sequence.desc())
        )
        with storage_errors("read status history", issue_id):
            return list(self.db.execute(stmt).scalars())

    def recent_across_all_issues(self, limit: int) -> List[IssueStatusLog]:
        stmt = (
            select(IssueStatusLog)
            .order_by(IssueStatusLog.changed_at.desc(), IssueStatusLog.sequence.desc())
            .limit(limit)
        )
        with storage_errors("read recent status changes"):
            return list(self.db.execute(stmt).scalars())
