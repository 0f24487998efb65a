"""Implementation of MarkerStore using SQLAlchemy"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import RepositoryError
from src.db.schema import IdempotencyMarker


class SQLMarkerStore:
    """Markers stored as rows keyed by name"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def has(self, key: str) -> bool:
        try:
            return self._fetch_marker(key) is not None
        except SQLAlchemyError as exc:
            raise RepositoryError(f"Could not read marker {key!r}.") from exc

    def claim(self, key: str) -> bool:
        """Insert the marker. The primary key makes a second claim fail, which we report as False."""
        if self.has(key):
            return False
        self.db.add(IdempotencyMarker(key=key))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(f"Could not store marker {key!r}.") from exc
        return True

    def _fetch_marker(self, key: str) -> IdempotencyMarker | None:
        query = select(IdempotencyMarker).where(IdempotencyMarker.key == key)
        return self.db.scalar(query)
