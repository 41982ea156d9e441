from fixtrack.models.issue import Issue, IssueAssignee, IssueStatusLog
from fixtrack.models.tenant import Channel, Customer, Project, User, UserRole

__all__ = [
    "Channel",
    "Customer",
    "Issue",
    "IssueAssignee",
    "IssueStatusLog",
    "Project",
    "User",
    "UserRole",
]
