import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from fixtrack.core.db import Base, utcnow
from fixtrack.core.fsm import Priority, Role, Source, Status


def enum_column_type(enum_cls, length: int = 20) -> Enum:
    # Store the lowercase value ("assigned_dev"), not the member name
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


class Issue(Base):
    __tablename__ = "issues"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    channel_id = Column(Uuid, ForeignKey("channels.id"), nullable=True, index=True)
    reporter_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    # Deprecated single assignee, superseded by issue_assignees
    assignee_id = Column(Uuid, ForeignKey("users.id"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=True)
    priority = Column(enum_column_type(Priority, 10), nullable=False, default=Priority.MEDIUM)
    status = Column(enum_column_type(Status), nullable=False, default=Status.OPEN, index=True)
    source = Column(enum_column_type(Source), nullable=False, default=Source.WEB)

    thread_id = Column(String(100), nullable=True)
    message_id = Column(String(100), nullable=True)
    public_hash = Column(String(100), nullable=True, unique=True)
    resolution_cause = Column(String(255), nullable=True)
    resolution_action = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)
    closed_at = Column(DateTime, nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_chat_issue(self) -> bool:
        return self.source == Source.CHAT and self.channel_id is not None

    @property
    def is_closed(self) -> bool:
        return self.status == Status.CLOSED


class IssueStatusLog(Base):
    """
    Immutable record of one accepted status transition.
    `sequence` counts transitions per issue starting at 1; the unique
    constraint stops two writers from appending the same step.
    """
    __tablename__ = "issue_status_logs"
    __table_args__ = (UniqueConstraint("issue_id", "sequence", name="uq_status_log_issue_sequence"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    issue_id = Column(Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    old_status = Column(enum_column_type(Status), nullable=True)
    new_status = Column(enum_column_type(Status), nullable=False)
    changed_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    reason = Column(Text, nullable=True)
    changed_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class IssueAssignee(Base):
    __tablename__ = "issue_assignees"
    __table_args__ = (UniqueConstraint("issue_id", "user_id", "role", name="uq_issue_assignee_role"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    issue_id = Column(Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(enum_column_type(Role), nullable=False)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)
