from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


class Status(str, Enum):
    OPEN = "open"
    ASSIGNED_DEV = "assigned_dev"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ASSIGNED_QA = "assigned_qa"
    VERIFIED = "verified"
    CLOSED = "closed"
    REJECTED = "rejected"
    REOPENED = "reopened"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Role(str, Enum):
    DEV = "dev"
    QA = "qa"
    REVIEWER = "reviewer"
    OTHER = "other"


class Source(str, Enum):
    WEB = "web"
    CHAT = "chat"


VALID_TRANSITIONS: Mapping[Status, Tuple[Status, ...]] = MappingProxyType({
    Status.OPEN: (Status.ASSIGNED_DEV, Status.CLOSED),
    Status.ASSIGNED_DEV: (Status.IN_PROGRESS, Status.OPEN, Status.CLOSED),
    Status.IN_PROGRESS: (Status.RESOLVED, Status.ASSIGNED_DEV, Status.OPEN),
    Status.RESOLVED: (Status.ASSIGNED_QA, Status.CLOSED, Status.IN_PROGRESS),
    Status.ASSIGNED_QA: (Status.VERIFIED, Status.REJECTED, Status.RESOLVED),
    Status.VERIFIED: (Status.CLOSED, Status.REJECTED),
    Status.REJECTED: (Status.ASSIGNED_DEV, Status.IN_PROGRESS, Status.OPEN),
    Status.CLOSED: (Status.REOPENED,),
    Status.REOPENED: (Status.OPEN, Status.ASSIGNED_DEV),
})

# Rank along the primary open -> closed path, for progress display only
WORKFLOW_STAGES: Mapping[Status, int] = MappingProxyType({
    Status.OPEN: 1,
    Status.ASSIGNED_DEV: 2,
    Status.IN_PROGRESS: 3,
    Status.RESOLVED: 4,
    Status.ASSIGNED_QA: 5,
    Status.VERIFIED: 6,
    Status.CLOSED: 7,
    Status.REJECTED: 0,
    Status.REOPENED: 0,
})

STATUS_DISPLAY_NAMES: Mapping[Status, str] = MappingProxyType({
    Status.OPEN: "Open",
    Status.ASSIGNED_DEV: "Assigned to Developer",
    Status.IN_PROGRESS: "In Progress",
    Status.RESOLVED: "Resolved",
    Status.ASSIGNED_QA: "Assigned to QA",
    Status.VERIFIED: "Verified",
    Status.CLOSED: "Closed",
    Status.REJECTED: "Rejected by QA",
    Status.REOPENED: "Reopened",
})

STATUS_COLORS: Mapping[Status, str] = MappingProxyType({
    Status.OPEN: "#6c757d",
    Status.ASSIGNED_DEV: "#17a2b8",
    Status.IN_PROGRESS: "#ffc107",
    Status.RESOLVED: "#28a745",
    Status.ASSIGNED_QA: "#007bff",
    Status.VERIFIED: "#20c997",
    Status.CLOSED: "#6f42c1",
    Status.REJECTED: "#dc3545",
    Status.REOPENED: "#fd7e14",
})

ROLE_DISPLAY_NAMES: Mapping[Role, str] = MappingProxyType({
    Role.DEV: "Developer",
    Role.QA: "QA Tester",
    Role.REVIEWER: "Reviewer",
    Role.OTHER: "Other",
})


def _check_exhaustive() -> None:
    for name, table, enum in (
        ("VALID_TRANSITIONS", VALID_TRANSITIONS, Status),
        ("WORKFLOW_STAGES", WORKFLOW_STAGES, Status),
        ("STATUS_DISPLAY_NAMES", STATUS_DISPLAY_NAMES, Status),
        ("STATUS_COLORS", STATUS_COLORS, Status),
        ("ROLE_DISPLAY_NAMES", ROLE_DISPLAY_NAMES, Role),
    ):
        missing = set(enum) - set(table)
        if missing:
            raise RuntimeError(f"{name} has no entry for {sorted(m.value for m in missing)}")


_check_exhaustive()


def _coerce(enum, value: Any):
    if isinstance(value, enum):
        return value
    try:
        return enum(value)
    except (ValueError, TypeError):
        return None


def is_transition_valid(from_status: Optional[Any], to_status: Any) -> bool:
    """
    Return True when the workflow allows moving from `from_status` to
    `to_status`. `from_status=None` means the issue does not exist yet, in
    which case only `open` is allowed. Never raises.
    """
    target = _coerce(Status, to_status)
    if target is None:
        return False
    if from_status is None:
        return target is Status.OPEN
    current = _coerce(Status, from_status)
    if current is None:
        return False
    return target in VALID_TRANSITIONS[current]


def next_possible_statuses(from_status: Any) -> Tuple[Status, ...]:
    current = _coerce(Status, from_status)
    if current is None:
        return ()
    return VALID_TRANSITIONS[current]


def workflow_stage(status: Any) -> int:
    current = _coerce(Status, status)
    return WORKFLOW_STAGES[current] if current is not None else 0


def status_display_name(status: Any) -> str:
    current = _coerce(Status, status)
    return STATUS_DISPLAY_NAMES[current] if current is not None else str(status)


def status_color(status: Any) -> str:
    current = _coerce(Status, status)
    return STATUS_COLORS[current] if current is not None else STATUS_COLORS[Status.OPEN]


def role_display_name(role: Any) -> str:
    current = _coerce(Role, role)
    return ROLE_DISPLAY_NAMES[current] if current is not None else "Unknown"


def is_valid_status(value: Any) -> bool:
    return _coerce(Status, value) is not None


def is_valid_priority(value: Any) -> bool:
    return _coerce(Priority, value) is not None


def is_valid_role(value: Any) -> bool:
    return _coerce(Role, value) is not None


def is_terminal_status(status: Any) -> bool:
    return _coerce(Status, status) is Status.CLOSED


def is_active_status(status: Any) -> bool:
    return not is_terminal_status(status)


def is_dev_phase(status: Any) -> bool:
    return _coerce(Status, status) in (Status.ASSIGNED_DEV, Status.IN_PROGRESS, Status.RESOLVED)


def is_qa_phase(status: Any) -> bool:
    return _coerce(Status, status) in (Status.ASSIGNED_QA, Status.VERIFIED, Status.REJECTED)
