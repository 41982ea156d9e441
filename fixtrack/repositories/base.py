from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fixtrack.core.errors import ConcurrentModification, StorageFailure


@contextmanager
def storage_errors(action: str, issue_id: Optional[Any] = None) -> Iterator[None]:
    try:
        yield
    except StaleDataError as exc:
        raise ConcurrentModification(issue_id) from exc
    except SQLAlchemyError as exc:
        raise StorageFailure(f"failed to {action}: {exc}") from exc


class SqlRepository:
    def __init__(self, db: Session):
        self.db = db

    def _add(self, instance, action: str):
        with storage_errors(action):
            self.db.add(instance)
            self.db.flush()
        return instance
