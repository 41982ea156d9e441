import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from fixtrack.core.assignments import AssignmentRegistry
from fixtrack.core.config import settings
from fixtrack.core.db import transaction, utcnow
from fixtrack.core.errors import (
    ChannelNotFound,
    ConcurrentModification,
    InvalidPriority,
    InvalidTransition,
    IssueNotFound,
    OperationCancelled,
    ProjectNotFound,
    UserNotFound,
    ValidationFailed,
)
from fixtrack.core.fsm import Priority, Role, Source, Status, is_transition_valid, next_possible_statuses
from fixtrack.core.locks import IssueLockPool, issue_locks
from fixtrack.core.status_log import StatusLog
from fixtrack.models import Issue, IssueStatusLog
from fixtrack.repositories import (
    SqlChannelRepository,
    SqlIssueRepository,
    SqlProjectRepository,
    SqlUserRepository,
)
from fixtrack.repositories.interfaces import (
    ChannelRepository,
    IssueRepository,
    ProjectRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

TransitionResult = Tuple[Issue, IssueStatusLog]


def _status_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.value if isinstance(value, Status) else str(value)


def coerce_priority(value: Any) -> Priority:
    if isinstance(value, Priority):
        return value
    try:
        return Priority(value)
    except (ValueError, TypeError):
        raise InvalidPriority(value) from None


class IssueWorkflowEngine:
    """
    Owns an issue's status, priority and resolution fields.

    Every status change goes through `request_transition` (or one of the
    named workflow actions built on it): the issue row and its status log
    entry are committed in one transaction while holding the issue's lock,
    and the caller's copy must still be current, otherwise
    `ConcurrentModification` is raised.

    One engine wraps one session; construct one per request or thread. The
    lock pool is shared across engines.
    """

    def __init__(
        self,
        db: Session,
        issues: Optional[IssueRepository] = None,
        users: Optional[UserRepository] = None,
        projects: Optional[ProjectRepository] = None,
        channels: Optional[ChannelRepository] = None,
        status_log: Optional[StatusLog] = None,
        registry: Optional[AssignmentRegistry] = None,
        locks: Optional[IssueLockPool] = None,
        lock_timeout: Optional[float] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.issues = issues or SqlIssueRepository(db)
        self.users = users or SqlUserRepository(db)
        self.projects = projects or SqlProjectRepository(db)
        self.channels = channels or SqlChannelRepository(db)
        self.status_log = status_log or StatusLog(db, clock=clock)
        self.locks = locks if locks is not None else issue_locks
        self.lock_timeout = settings.ISSUE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self.registry = registry or AssignmentRegistry(
            db, users=self.users, issues=self.issues, locks=self.locks, lock_timeout=self.lock_timeout, clock=clock,
        )
        self.clock = clock

    # -- creation and queries -------------------------------------------------

    def report_issue(
        self,
        title: str,
        description: str,
        reporter_id: uuid.UUID,
        project_id: Optional[uuid.UUID] = None,
        channel_id: Optional[uuid.UUID] = None,
        image_url: Optional[str] = None,
    ) -> Issue:
        """
        Create an issue at `open`.

        With a `channel_id` the issue is a chat issue: the channel must be
        registered and active, its project becomes the issue's project and a
        public hash is generated. Without one, `project_id` is required and
        the issue is a web issue.
        """
        title = (title or "").strip()
        description = (description or "").strip()
        if not title:
            raise ValidationFailed("issue title cannot be empty")
        if not description:
            raise ValidationFailed("issue description cannot be empty")
        if not is_transition_valid(None, Status.OPEN):
            raise InvalidTransition(None, Status.OPEN.value)

        with transaction(self.db):
            if self.users.get_by_id(reporter_id) is None:
                raise UserNotFound(reporter_id)

            public_hash = None
            if channel_id is not None:
                channel = self.channels.get_by_id(channel_id)
                if channel is None:
                    raise ChannelNotFound(channel_id)
                if not channel.is_active:
                    raise ValidationFailed(f"channel {channel_id} is not active")
                if project_id is not None and project_id != channel.project_id:
                    raise ValidationFailed("channel belongs to a different project")
                project_id = channel.project_id
                source = Source.CHAT
                public_hash = uuid.uuid4().hex
            else:
                if project_id is None:
                    raise ValidationFailed("project_id is required for issues reported outside a channel")
                if self.projects.get_by_id(project_id) is None:
                    raise ProjectNotFound(project_id)
                source = Source.WEB

            now = self.clock()
            issue = Issue(
                id=uuid.uuid4(),
                project_id=project_id,
                channel_id=channel_id,
                reporter_id=reporter_id,
                title=title,
                description=description,
                image_url=(image_url or "").strip() or None,
                priority=Priority.MEDIUM,
                status=Status.OPEN,
                source=source,
                public_hash=public_hash,
                created_at=now,
                updated_at=now,
            )
            self.issues.create(issue)

        logger.info("Issue %s reported in project %s (%s)", issue.id, project_id, source.value)
        return issue

    def get_issue(self, issue_id: uuid.UUID) -> Issue:
        issue = self.issues.get_by_id(issue_id)
        if issue is None:
            raise IssueNotFound(issue_id)
        return issue

    def issues_by_status(self, status: Any, offset: int = 0, limit: Optional[int] = None) -> List[Issue]:
        try:
            status = Status(status)
        except (ValueError, TypeError):
            raise ValidationFailed(f"unknown status: {status!r}") from None
        return self.issues.get_by_status(status, offset, limit)

    def issues_by_channel(self, channel_id: uuid.UUID, offset: int = 0, limit: Optional[int] = None) -> List[Issue]:
        return self.issues.get_by_channel(channel_id, offset, limit)

    def list_issues(self, offset: int = 0, limit: Optional[int] = 100) -> List[Issue]:
        return self.issues.list(offset, limit)

    def history(self, issue_id: uuid.UUID) -> List[IssueStatusLog]:
        self.get_issue(issue_id)
        return self.status_log.history_for(issue_id)

    def next_possible_statuses(self, issue: Issue) -> Tuple[Status, ...]:
        return next_possible_statuses(issue.status)

    def search_by_partial_id(self, partial_id: str, channel_id: Optional[uuid.UUID] = None) -> List[Issue]:
        """
        Issues whose canonical id (lowercase, hyphenated) starts with
        `partial_id`, limited to one channel when `channel_id` is given.
        Every match is returned; picking one is up to the caller.
        """
        prefix = (partial_id or "").strip()
        if not prefix:
            return []
        return self.issues.get_many(self.issues.ids_with_prefix(prefix, channel_id))

    # -- status transitions ----------------------------------------------------

    def request_transition(
        self,
        issue: Issue,
        new_status: Any,
        actor: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> TransitionResult:
        target = self._coerce_target(issue, new_status)
        with self._locked(issue, cancel) as current:
            self._require_actor(actor)
            entry = self._apply_transition(current, target, actor, reason)
        self._log_transition(current, entry)
        return current, entry

    def close(self, issue: Issue, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self.request_transition(issue, Status.CLOSED, actor, cancel=cancel)

    def reopen(self, issue: Issue, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        """
        Bring an issue back to `open`. A closed issue passes through
        `reopened` first, so the log gets two entries in one commit.
        """
        applied = []
        with self._locked(issue, cancel) as current:
            self._require_actor(actor)
            if current.status == Status.CLOSED:
                applied.append(self._apply_transition(current, Status.REOPENED, actor, None))
            applied.append(self._apply_transition(current, Status.OPEN, actor, None))
        for entry in applied:
            self._log_transition(current, entry)
        return current, applied[-1]

    def assign_developer(self, issue: Issue, user_id: uuid.UUID, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self._assign_and_transition(issue, user_id, Role.DEV, Status.ASSIGNED_DEV, actor, cancel)

    def start_work(self, issue: Issue, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self.request_transition(issue, Status.IN_PROGRESS, actor, cancel=cancel)

    def resolve(
        self,
        issue: Issue,
        resolution_cause: str,
        resolution_action: str,
        actor: Optional[uuid.UUID] = None,
        cancel=None,
    ) -> TransitionResult:
        with self._locked(issue, cancel) as current:
            self._require_actor(actor)
            self._ensure_allowed(current, Status.RESOLVED)
            current.resolution_cause = (resolution_cause or "").strip() or None
            current.resolution_action = (resolution_action or "").strip() or None
            entry = self._apply_transition(current, Status.RESOLVED, actor, None)
        self._log_transition(current, entry)
        return current, entry

    def assign_qa(self, issue: Issue, user_id: uuid.UUID, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self._assign_and_transition(issue, user_id, Role.QA, Status.ASSIGNED_QA, actor, cancel)

    def verify(self, issue: Issue, notes: Optional[str] = None, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self.request_transition(issue, Status.VERIFIED, actor, reason=notes, cancel=cancel)

    def reject(self, issue: Issue, reason: Optional[str] = None, actor: Optional[uuid.UUID] = None, cancel=None) -> TransitionResult:
        return self.request_transition(issue, Status.REJECTED, actor, reason=reason, cancel=cancel)

    # -- administrative edits --------------------------------------------------

    def update_priority(self, issue: Issue, new_priority: Any) -> Issue:
        priority = coerce_priority(new_priority)
        with self._locked(issue, None, check_version=False) as current:
            current.priority = priority
            current.updated_at = self.clock()
            self.issues.update(current)
        logger.info("Issue %s priority set to %s", current.id, priority.value)
        return current

    def update_thread_info(self, issue: Issue, thread_id: Optional[str], message_id: Optional[str]) -> Issue:
        with self._locked(issue, None, check_version=False) as current:
            current.thread_id = thread_id
            current.message_id = message_id
            current.updated_at = self.clock()
            self.issues.update(current)
        logger.info("Issue %s linked to thread %s", current.id, thread_id)
        return current

    # -- internals -------------------------------------------------------------

    @contextmanager
    def _locked(self, issue: Issue, cancel: Optional[threading.Event], check_version: bool = True) -> Iterator[Issue]:
        """
        Hold the issue's lock and an open transaction, yielding a freshly
        loaded copy. Commits when the block finishes, rolls back if it raises.
        """
        issue_id = issue.id
        expected_version = issue.version
        with self.locks.hold(issue_id, timeout=self.lock_timeout):
            with transaction(self.db):
                self._check_cancel(cancel, issue_id)
                current = self.issues.get_by_id(issue_id, for_update=True)
                if current is None:
                    raise IssueNotFound(issue_id)
                if check_version and expected_version is not None and current.version != expected_version:
                    raise ConcurrentModification(issue_id)
                yield current
                self._check_cancel(cancel, issue_id)

    def _assign_and_transition(
        self,
        issue: Issue,
        user_id: uuid.UUID,
        role: Role,
        target: Status,
        actor: Optional[uuid.UUID],
        cancel: Optional[threading.Event],
    ) -> TransitionResult:
        # Assignment and transition share one transaction: a failed transition
        # rolls the new assignment back with it.
        with self._locked(issue, cancel) as current:
            self._require_actor(actor)
            self._ensure_allowed(current, target)
            self.registry.assign(current.id, user_id, role)
            entry = self._apply_transition(current, target, actor, None)
        self._log_transition(current, entry)
        return current, entry

    def _apply_transition(
        self,
        issue: Issue,
        target: Status,
        actor: Optional[uuid.UUID],
        reason: Optional[str],
    ) -> IssueStatusLog:
        from_status = issue.status
        self._ensure_allowed(issue, target)

        now = self.clock()
        issue.status = target
        issue.updated_at = now
        if target is Status.CLOSED:
            issue.closed_at = now
        elif issue.closed_at is not None:
            issue.closed_at = None

        entry = self.status_log.append(issue.id, from_status, target, actor=actor, reason=reason)
        self.issues.update(issue)
        return entry

    def _ensure_allowed(self, issue: Issue, target: Status) -> None:
        if not is_transition_valid(issue.status, target):
            raise InvalidTransition(_status_value(issue.status), target.value)

    def _coerce_target(self, issue: Issue, value: Any) -> Status:
        try:
            return Status(value)
        except (ValueError, TypeError):
            raise InvalidTransition(_status_value(issue.status), str(value)) from None

    def _require_actor(self, actor: Optional[uuid.UUID]) -> None:
        if actor is not None and self.users.get_by_id(actor) is None:
            raise UserNotFound(actor)

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event], issue_id: uuid.UUID) -> None:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"operation on issue {issue_id} was cancelled")

    @staticmethod
    def _log_transition(issue: Issue, entry: IssueStatusLog) -> None:
        logger.info(
            "Issue %s: %s -> %s (by %s)",
            issue.id, _status_value(entry.old_status), _status_value(entry.new_status), entry.changed_by,
        )
