import random
import threading
import uuid

import pytest

from fixtrack.core.errors import (
    ChannelNotFound,
    ConcurrentModification,
    InvalidPriority,
    InvalidTransition,
    IssueNotFound,
    OperationCancelled,
    StorageFailure,
    UserNotFound,
    ValidationFailed,
)
from fixtrack.core.fsm import Priority, Role, Source, Status, next_possible_statuses
from fixtrack.core.workflow import IssueWorkflowEngine


def _walk_to(workflow, issue, tenant, target):
    """Drive an issue along the primary path until it reaches `target`."""
    steps = [
        (Status.ASSIGNED_DEV, lambda i: workflow.assign_developer(i, tenant.dev.id)),
        (Status.IN_PROGRESS, lambda i: workflow.start_work(i)),
        (Status.RESOLVED, lambda i: workflow.resolve(i, "null session", "guarded the handler")),
        (Status.ASSIGNED_QA, lambda i: workflow.assign_qa(i, tenant.qa.id)),
        (Status.VERIFIED, lambda i: workflow.verify(i)),
        (Status.CLOSED, lambda i: workflow.close(i)),
    ]
    for status, step in steps:
        issue, _ = step(issue)
        if status is target:
            return issue
    raise AssertionError(f"{target} is not on the primary path")


# -- reporting ------------------------------------------------------------------


def test_chat_issue_starts_open_in_channel_project(workflow, issue, tenant):
    assert issue.status == Status.OPEN
    assert issue.priority == Priority.MEDIUM
    assert issue.source == Source.CHAT
    assert issue.project_id == tenant.project.id
    assert issue.public_hash
    assert issue.closed_at is None
    assert workflow.history(issue.id) == []


def test_web_issue_requires_project(workflow, tenant):
    with pytest.raises(ValidationFailed):
        workflow.report_issue("Broken link", "Footer link 404s", tenant.reporter.id)

    issue = workflow.report_issue("Broken link", "Footer link 404s", tenant.reporter.id, project_id=tenant.project.id)
    assert issue.source == Source.WEB
    assert issue.public_hash is None


def test_report_rejects_blank_title(workflow, tenant):
    with pytest.raises(ValidationFailed):
        workflow.report_issue("   ", "something", tenant.reporter.id, project_id=tenant.project.id)


def test_report_rejects_unknown_reporter_and_channel(workflow, tenant):
    with pytest.raises(UserNotFound):
        workflow.report_issue("Title", "Body", uuid.uuid4(), project_id=tenant.project.id)
    with pytest.raises(ChannelNotFound):
        workflow.report_issue("Title", "Body", tenant.reporter.id, channel_id=uuid.uuid4())


def test_report_in_inactive_channel_is_rejected(workflow, tenant):
    tenant.directory.set_channel_active(tenant.channel.id, False)
    with pytest.raises(ValidationFailed):
        workflow.report_issue("Title", "Body", tenant.reporter.id, channel_id=tenant.channel.id)
    assert workflow.list_issues() == []


# -- lifecycle ------------------------------------------------------------------


def test_full_lifecycle_records_every_step(workflow, registry, issue, tenant):
    issue, entry = workflow.assign_developer(issue, tenant.dev.id, actor=tenant.support.id)
    assert issue.status == Status.ASSIGNED_DEV
    assert entry.changed_by == tenant.support.id
    assert [(a.user_id, a.role) for a in registry.list_for_issue(issue.id)] == [(tenant.dev.id, Role.DEV)]

    issue, _ = workflow.start_work(issue, actor=tenant.dev.id)
    assert issue.status == Status.IN_PROGRESS

    issue, _ = workflow.resolve(issue, "race in cart total", "recompute inside the lock", actor=tenant.dev.id)
    assert issue.status == Status.RESOLVED
    assert issue.resolution_cause == "race in cart total"
    assert issue.resolution_action == "recompute inside the lock"

    issue, _ = workflow.assign_qa(issue, tenant.qa.id, actor=tenant.support.id)
    assert registry.is_assigned_with_role(issue.id, tenant.qa.id, Role.QA)

    issue, entry = workflow.verify(issue, notes="checked on staging", actor=tenant.qa.id)
    assert entry.reason == "checked on staging"

    issue, _ = workflow.close(issue, actor=tenant.support.id)
    assert issue.status == Status.CLOSED
    assert issue.closed_at is not None

    history = list(reversed(workflow.history(issue.id)))
    assert [e.new_status for e in history] == [
        Status.ASSIGNED_DEV, Status.IN_PROGRESS, Status.RESOLVED,
        Status.ASSIGNED_QA, Status.VERIFIED, Status.CLOSED,
    ]
    assert [e.sequence for e in history] == [1, 2, 3, 4, 5, 6]


def test_rejected_issue_cannot_jump_back_to_resolved(workflow, issue, tenant):
    issue = _walk_to(workflow, issue, tenant, Status.VERIFIED)
    issue, entry = workflow.reject(issue, reason="regression on mobile")
    assert issue.status == Status.REJECTED
    assert entry.reason == "regression on mobile"

    with pytest.raises(InvalidTransition) as excinfo:
        workflow.request_transition(issue, Status.RESOLVED)
    assert excinfo.value.from_status == "rejected"
    assert excinfo.value.to_status == "resolved"

    issue, _ = workflow.request_transition(issue, Status.IN_PROGRESS)
    assert issue.status == Status.IN_PROGRESS


def test_invalid_transition_changes_nothing(db_session, workflow, issue):
    version = issue.version
    with pytest.raises(InvalidTransition):
        workflow.request_transition(issue, Status.VERIFIED)

    db_session.expire_all()
    reloaded = workflow.get_issue(issue.id)
    assert reloaded.status == Status.OPEN
    assert reloaded.version == version
    assert workflow.history(issue.id) == []


def test_unknown_target_is_an_invalid_transition(workflow, issue):
    with pytest.raises(InvalidTransition) as excinfo:
        workflow.request_transition(issue, "archived")
    assert excinfo.value.from_status == "open"
    assert excinfo.value.to_status == "archived"


def test_unknown_actor_is_rejected(workflow, issue):
    with pytest.raises(UserNotFound):
        workflow.close(issue, actor=uuid.uuid4())
    assert workflow.history(issue.id) == []


def test_reopen_from_closed_passes_through_reopened(workflow, issue, tenant):
    issue, _ = workflow.close(issue)
    issue, entry = workflow.reopen(issue, actor=tenant.support.id)

    assert issue.status == Status.OPEN
    assert issue.closed_at is None
    assert entry.new_status == Status.OPEN
    history = workflow.history(issue.id)
    assert [(e.old_status, e.new_status) for e in history[:2]] == [
        (Status.REOPENED, Status.OPEN),
        (Status.CLOSED, Status.REOPENED),
    ]


def test_reopen_of_open_issue_is_invalid(workflow, issue):
    with pytest.raises(InvalidTransition):
        workflow.reopen(issue)


@pytest.mark.parametrize("seed", range(4))
def test_random_walk_keeps_history_consistent(workflow, issue, tenant, seed):
    rng = random.Random(seed)
    applied = []
    for _ in range(20):
        target = rng.choice(next_possible_statuses(issue.status))
        issue, _ = workflow.request_transition(issue, target, actor=tenant.support.id)
        applied.append(target)
        assert (issue.closed_at is not None) == (issue.status == Status.CLOSED)

    history = list(reversed(workflow.history(issue.id)))
    assert [e.new_status for e in history] == applied

    replayed = Status.OPEN
    for entry in history:
        assert entry.old_status == replayed
        replayed = entry.new_status
    assert replayed == issue.status


# -- composite actions -------------------------------------------------------------


def test_assign_qa_from_open_leaves_no_assignment(workflow, registry, issue, tenant):
    with pytest.raises(InvalidTransition):
        workflow.assign_qa(issue, tenant.qa.id)
    assert registry.list_for_issue_and_role(issue.id, Role.QA) == []


def test_failed_log_write_rolls_back_the_assignment(monkeypatch, workflow, registry, issue, tenant):
    def broken_append(*args, **kwargs):
        raise StorageFailure("status log unavailable")

    monkeypatch.setattr(workflow.status_log, "append", broken_append)
    with pytest.raises(StorageFailure):
        workflow.assign_developer(issue, tenant.dev.id)
    monkeypatch.undo()

    assert registry.list_for_issue(issue.id) == []
    assert workflow.get_issue(issue.id).status == Status.OPEN


def test_assign_unknown_developer(workflow, registry, issue):
    with pytest.raises(UserNotFound):
        workflow.assign_developer(issue, uuid.uuid4())
    assert workflow.get_issue(issue.id).status == Status.OPEN


# -- cancellation and concurrency ---------------------------------------------------


def test_cancelled_request_leaves_no_trace(db_session, workflow, issue):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        workflow.close(issue, cancel=cancel)

    db_session.expire_all()
    assert workflow.get_issue(issue.id).status == Status.OPEN
    assert workflow.history(issue.id) == []


def test_stale_copy_is_refused_then_retry_succeeds(session_factory, workflow, lock_pool, issue, tenant):
    other_db = session_factory()
    try:
        other = IssueWorkflowEngine(other_db, locks=lock_pool)
        stale = other.get_issue(issue.id)
        assert stale.status == Status.OPEN

        workflow.assign_developer(issue, tenant.dev.id)

        with pytest.raises(ConcurrentModification) as excinfo:
            other.close(stale)
        assert excinfo.value.retryable

        fresh = other.get_issue(issue.id)
        assert fresh.status == Status.ASSIGNED_DEV
        fresh, _ = other.start_work(fresh)
        assert fresh.status == Status.IN_PROGRESS
    finally:
        other_db.close()


def test_concurrent_transitions_have_a_single_winner(session_factory, lock_pool, tenant):
    setup_db = session_factory()
    workflow = IssueWorkflowEngine(setup_db, locks=lock_pool)
    issue = workflow.report_issue("Flaky login", "Login fails one time in ten.", tenant.reporter.id, project_id=tenant.project.id)
    issue = _walk_to(workflow, issue, tenant, Status.RESOLVED)
    issue_id = issue.id
    logged_before = len(workflow.history(issue_id))
    setup_db.close()

    targets = [Status.ASSIGNED_QA, Status.CLOSED, Status.IN_PROGRESS] * 2
    barrier = threading.Barrier(len(targets), timeout=30)
    winners, losers, unexpected = [], [], []

    def worker(target):
        db = session_factory()
        try:
            engine = IssueWorkflowEngine(db, locks=lock_pool)
            mine = engine.get_issue(issue_id)
            mine.version  # loaded before the race
            barrier.wait()
            try:
                engine.request_transition(mine, target)
                winners.append(target)
            except ConcurrentModification:
                losers.append(target)
            except Exception as exc:  # surfaced by the assertions below
                unexpected.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(t,)) for t in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert unexpected == []
    assert len(winners) == 1
    assert len(losers) == len(targets) - 1
    assert len(lock_pool) == 0

    check_db = session_factory()
    try:
        history = IssueWorkflowEngine(check_db, locks=lock_pool).history(issue_id)
    finally:
        check_db.close()
    assert len(history) == logged_before + 1
    assert history[0].old_status == Status.RESOLVED
    assert history[0].new_status == winners[0]


def test_lock_pool_is_empty_after_operations(workflow, lock_pool, issue, tenant):
    workflow.assign_developer(issue, tenant.dev.id)
    with pytest.raises(InvalidTransition):
        workflow.request_transition(issue, Status.VERIFIED)
    assert len(lock_pool) == 0


def test_lock_timeout_reports_concurrent_modification(db_session, lock_pool, issue):
    impatient = IssueWorkflowEngine(db_session, locks=lock_pool, lock_timeout=0.05)
    holding, release = threading.Event(), threading.Event()

    def hold_issue():
        with lock_pool.hold(issue_id):
            holding.set()
            release.wait(timeout=10)

    issue_id = issue.id
    holder = threading.Thread(target=hold_issue)
    holder.start()
    try:
        assert holding.wait(timeout=10)
        with pytest.raises(ConcurrentModification):
            impatient.close(issue)
    finally:
        release.set()
        holder.join(timeout=10)
    assert impatient.get_issue(issue_id).status == Status.OPEN
    assert len(lock_pool) == 0


def test_lock_is_reentrant_for_the_holding_thread(workflow, lock_pool, issue):
    with lock_pool.hold(issue.id):
        issue, _ = workflow.close(issue)
    assert issue.status == Status.CLOSED
    assert len(lock_pool) == 0


# -- administrative edits and queries ----------------------------------------------


def test_update_priority(workflow, issue):
    updated = workflow.update_priority(issue, "high")
    assert updated.priority == Priority.HIGH
    assert updated.status == Status.OPEN
    assert workflow.history(issue.id) == []


def test_update_priority_rejects_unknown_value(workflow, issue):
    with pytest.raises(InvalidPriority):
        workflow.update_priority(issue, "urgent")
    assert workflow.get_issue(issue.id).priority == Priority.MEDIUM


def test_update_thread_info(workflow, issue):
    updated = workflow.update_thread_info(issue, "thread-9", "message-3")
    assert (updated.thread_id, updated.message_id) == ("thread-9", "message-3")


def test_search_by_partial_id(workflow, issue, tenant):
    other = workflow.report_issue("Other", "Elsewhere", tenant.reporter.id, project_id=tenant.project.id)
    prefix = str(issue.id)[:8]

    assert issue.id in [i.id for i in workflow.search_by_partial_id(prefix)]
    assert [i.id for i in workflow.search_by_partial_id(str(issue.id))] == [issue.id]
    assert [i.id for i in workflow.search_by_partial_id(str(other.id), channel_id=tenant.channel.id)] == []
    assert workflow.search_by_partial_id("") == []


def test_queries_by_status_and_channel(workflow, issue, tenant):
    web = workflow.report_issue("Web", "From the form", tenant.reporter.id, project_id=tenant.project.id)
    workflow.close(web)

    assert [i.id for i in workflow.issues_by_status(Status.OPEN)] == [issue.id]
    assert [i.id for i in workflow.issues_by_status("closed")] == [web.id]
    assert [i.id for i in workflow.issues_by_channel(tenant.channel.id)] == [issue.id]
    with pytest.raises(ValidationFailed):
        workflow.issues_by_status("archived")


def test_missing_issue(workflow):
    with pytest.raises(IssueNotFound):
        workflow.get_issue(uuid.uuid4())
    with pytest.raises(IssueNotFound):
        workflow.history(uuid.uuid4())


def test_next_possible_statuses_for_issue(workflow, issue):
    assert workflow.next_possible_statuses(issue) == (Status.ASSIGNED_DEV, Status.CLOSED)


def test_status_and_channel_queries_page_in_the_database(db_session, lock_pool, tenant, ticking_clock):
    workflow = IssueWorkflowEngine(db_session, locks=lock_pool, clock=ticking_clock)
    reported = [
        workflow.report_issue(f"Issue {n}", "Body", tenant.reporter.id, channel_id=tenant.channel.id)
        for n in range(3)
    ]
    newest_first = [i.id for i in reversed(reported)]

    assert [i.id for i in workflow.issues_by_status(Status.OPEN, offset=1, limit=1)] == newest_first[1:2]
    assert [i.id for i in workflow.issues_by_status(Status.OPEN, offset=1)] == newest_first[1:]
    assert [i.id for i in workflow.issues_by_channel(tenant.channel.id, limit=2)] == newest_first[:2]
    assert [i.id for i in workflow.list_issues(2, None)] == newest_first[2:]


def test_id_prefix_scan_only_returns_matching_ids(workflow, issue, tenant):
    other = workflow.report_issue("Other", "Elsewhere", tenant.reporter.id, project_id=tenant.project.id)

    assert workflow.issues.ids_with_prefix(str(issue.id)) == [issue.id]
    assert workflow.issues.ids_with_prefix(str(other.id), channel_id=tenant.channel.id) == []
    assert workflow.issues.get_many([]) == []
