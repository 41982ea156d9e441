from fastapi import Depends
from sqlalchemy.orm import Session

from fixtrack.core.assignments import AssignmentRegistry
from fixtrack.core.db import get_db
from fixtrack.core.status_log import StatusLog
from fixtrack.core.tenants import TenantDirectory
from fixtrack.core.workflow import IssueWorkflowEngine


def get_workflow(db: Session = Depends(get_db)) -> IssueWorkflowEngine:
    return IssueWorkflowEngine(db)


def get_registry(db: Session = Depends(get_db)) -> AssignmentRegistry:
    return AssignmentRegistry(db)


def get_status_log(db: Session = Depends(get_db)) -> StatusLog:
    return StatusLog(db)


def get_directory(db: Session = Depends(get_db)) -> TenantDirectory:
    return TenantDirectory(db)
