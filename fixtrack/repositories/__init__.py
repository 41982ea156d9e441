from fixtrack.repositories.assignees import SqlAssigneeRepository
from fixtrack.repositories.issues import SqlIssueRepository
from fixtrack.repositories.status_logs import SqlStatusLogRepository
from fixtrack.repositories.tenants import (
    SqlChannelRepository,
    SqlCustomerRepository,
    SqlProjectRepository,
    SqlUserRepository,
)

__all__ = [
    "SqlAssigneeRepository",
    "SqlChannelRepository",
    "SqlCustomerRepository",
    "SqlIssueRepository",
    "SqlProjectRepository",
    "SqlStatusLogRepository",
    "SqlUserRepository",
]
