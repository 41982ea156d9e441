import pytest

from fixtrack.core.fsm import (
    Role,
    Status,
    VALID_TRANSITIONS,
    is_active_status,
    is_dev_phase,
    is_qa_phase,
    is_terminal_status,
    is_transition_valid,
    is_valid_priority,
    is_valid_status,
    next_possible_statuses,
    role_display_name,
    status_color,
    status_display_name,
    workflow_stage,
)

EXPECTED = {
    Status.OPEN: [Status.ASSIGNED_DEV, Status.CLOSED],
    Status.ASSIGNED_DEV: [Status.IN_PROGRESS, Status.OPEN, Status.CLOSED],
    Status.IN_PROGRESS: [Status.RESOLVED, Status.ASSIGNED_DEV, Status.OPEN],
    Status.RESOLVED: [Status.ASSIGNED_QA, Status.CLOSED, Status.IN_PROGRESS],
    Status.ASSIGNED_QA: [Status.VERIFIED, Status.REJECTED, Status.RESOLVED],
    Status.VERIFIED: [Status.CLOSED, Status.REJECTED],
    Status.REJECTED: [Status.ASSIGNED_DEV, Status.IN_PROGRESS, Status.OPEN],
    Status.CLOSED: [Status.REOPENED],
    Status.REOPENED: [Status.OPEN, Status.ASSIGNED_DEV],
}


@pytest.mark.parametrize("current", list(Status))
def test_next_possible_statuses_match_workflow_table(current):
    assert list(next_possible_statuses(current)) == EXPECTED[current]


def test_every_status_has_a_row():
    assert set(VALID_TRANSITIONS) == set(Status)


@pytest.mark.parametrize("current", list(Status))
@pytest.mark.parametrize("target", list(Status))
def test_is_transition_valid_agrees_with_next_statuses(current, target):
    assert is_transition_valid(current, target) == (target in EXPECTED[current])


@pytest.mark.parametrize("target", list(Status))
def test_new_issue_can_only_enter_open(target):
    assert is_transition_valid(None, target) == (target is Status.OPEN)


def test_closed_has_single_outward_edge():
    assert next_possible_statuses(Status.CLOSED) == (Status.REOPENED,)
    assert is_terminal_status(Status.CLOSED)
    assert not is_active_status(Status.CLOSED)


def test_raw_strings_are_accepted():
    assert is_transition_valid("resolved", "assigned_qa")
    assert not is_transition_valid("rejected", "resolved")
    assert next_possible_statuses("verified") == (Status.CLOSED, Status.REJECTED)


def test_unknown_values_never_raise():
    assert is_transition_valid("archived", Status.OPEN) is False
    assert is_transition_valid(Status.OPEN, "archived") is False
    assert is_transition_valid(None, "archived") is False
    assert next_possible_statuses("archived") == ()
    assert next_possible_statuses(None) == ()


def test_table_is_read_only():
    with pytest.raises(TypeError):
        VALID_TRANSITIONS[Status.CLOSED] = (Status.OPEN,)


def test_workflow_stage_follows_primary_path():
    path = [
        Status.OPEN, Status.ASSIGNED_DEV, Status.IN_PROGRESS, Status.RESOLVED,
        Status.ASSIGNED_QA, Status.VERIFIED, Status.CLOSED,
    ]
    assert [workflow_stage(s) for s in path] == [1, 2, 3, 4, 5, 6, 7]
    assert workflow_stage(Status.REJECTED) == 0
    assert workflow_stage(Status.REOPENED) == 0
    assert workflow_stage("unknown") == 0


def test_all_nine_statuses_are_valid():
    assert all(is_valid_status(s.value) for s in Status)
    assert not is_valid_status("pending")


def test_phases_and_display_names():
    assert is_dev_phase(Status.IN_PROGRESS)
    assert not is_dev_phase(Status.ASSIGNED_QA)
    assert is_qa_phase(Status.REJECTED)
    assert status_display_name(Status.ASSIGNED_QA) == "Assigned to QA"
    assert status_display_name("mystery") == "mystery"
    assert role_display_name(Role.QA) == "QA Tester"
    assert role_display_name("boss") == "Unknown"
    assert status_color(Status.REJECTED) == "#dc3545"
    assert status_color("closed") == "#6f42c1"
    assert status_color("mystery") == status_color(Status.OPEN)
    assert is_valid_priority("high")
    assert not is_valid_priority("urgent")
