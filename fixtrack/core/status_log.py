import logging
import uuid
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from fixtrack.core.db import transaction, utcnow
from fixtrack.core.errors import ValidationFailed
from fixtrack.core.fsm import Status
from fixtrack.models import IssueStatusLog
from fixtrack.repositories import SqlStatusLogRepository
from fixtrack.repositories.interfaces import StatusLogRepository

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 50


def _as_status(value: Any) -> Status:
    try:
        return Status(value)
    except (ValueError, TypeError):
        raise ValidationFailed(f"unknown status: {value!r}") from None


class StatusLog:
    """
    Append-only history of status changes.

    `append` records what it is told; deciding whether a transition is
    legal happens in the workflow engine before it gets here.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[StatusLogRepository] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.repository = repository or SqlStatusLogRepository(db)
        self.clock = clock

    def append(
        self,
        issue_id: uuid.UUID,
        old_status: Optional[Any],
        new_status: Any,
        actor: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> IssueStatusLog:
        new_status = _as_status(new_status)
        old_status = _as_status(old_status) if old_status is not None else None

        with transaction(self.db):
            entry = IssueStatusLog(
                id=uuid.uuid4(),
                issue_id=issue_id,
                sequence=self.repository.last_sequence(issue_id) + 1,
                old_status=old_status,
                new_status=new_status,
                changed_by=actor,
                reason=reason,
                changed_at=self.clock(),
            )
            self.repository.append(entry)

        logger.debug(
            "Status log #%s for issue %s: %s -> %s",
            entry.sequence, issue_id, old_status.value if old_status else None, new_status.value,
        )
        return entry

    def history_for(self, issue_id: uuid.UUID) -> List[IssueStatusLog]:
        """Entries for one issue, newest first."""
        return self.repository.history_for(issue_id)

    def recent_across_all_issues(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[IssueStatusLog]:
        return self.repository.recent_across_all_issues(limit)
