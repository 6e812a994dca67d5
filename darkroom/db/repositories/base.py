"""Base repository pattern for data access."""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.base import TimestampMixin, touch

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Generic repository with CRUD operations.

    Repositories never commit: the caller's transaction decides whether a
    unit of work is kept. Integrity errors raised by the database at flush
    are surfaced as ``ConstraintViolation``.
    """

    resource = "entity"

    def __init__(self, session: Session, model: Type[T]):
        """Initialize repository with session and model type.

        Args:
            session: Database session
            model: The model class this repository operates on
        """
        self.session: Any = session
        self.model = model

    def get(self, id: Any) -> Optional[T]:
        """Get entity by primary key, or None."""
        return self.session.get(self.model, id)

    def get_or_fail(self, id: Any) -> T:
        """Get entity by primary key.

        Raises:
            NotFound: If no such entity exists
        """
        entity = self.get(id)
        if entity is None:
            raise NotFound(self.resource, id)
        return entity

    def exists(self, id: Any) -> bool:
        return self.get(id) is not None

    def list(self, limit: int = 100, offset: int = 0) -> List[T]:
        """List entities with pagination."""
        stmt = select(self.model).offset(offset).limit(limit)
        return list(self.session.exec(stmt).all())

    def count(self) -> int:
        stmt = select(func.count()).select_from(self.model)
        return int(self.session.exec(stmt).one())

    def add(self, entity: T) -> T:
        """Add new entity and flush it so database constraints apply now."""
        self.session.add(entity)
        self.flush()
        return entity

    def update(self, entity: T) -> T:
        """Flush pending changes of an existing entity.

        Timestamped rows get a fresh ``updated_at`` even when every assigned
        value equals the stored one.
        """
        if isinstance(entity, TimestampMixin):
            touch(entity)
        self.session.add(entity)
        self.flush()
        return entity

    def delete(self, entity: T) -> None:
        """Delete entity. Dependent rows go with it via ON DELETE CASCADE.

        The database removes dependents behind the ORM's back, so the
        identity map is cleared to keep later reads from serving them.
        """
        self.session.delete(entity)
        self.flush()
        self.session.expunge_all()

    def flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.debug(f"Integrity error on {self.resource}: {e.orig}")
            raise ConstraintViolation(
                f"{self.resource} violates a catalog constraint: {e.orig}",
                entity=self.resource,
            ) from e
