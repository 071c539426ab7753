# backend/app/repositories/base_repository.py
"""
Base Repository Pattern for CoachDesk.

Repositories own every SQLAlchemy query in the application. They flush but
never commit; transaction boundaries belong to the service layer.
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


def column_value(value: Any) -> Any:
    """Enum members are stored by value."""
    return value.value if isinstance(value, Enum) else value


class IRepository(ABC, Generic[T]):
    """Core data access contract shared by all repositories."""

    @abstractmethod
    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        """Return the entity with this primary key, or None."""

    @abstractmethod
    def create(self, **kwargs: Any) -> T:
        """Persist a new entity and flush so its id is assigned."""

    @abstractmethod
    def update(self, id: str, **kwargs: Any) -> Optional[T]:
        """Apply the given attributes; None when the entity is missing."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Delete by id; False when the entity is missing."""

    @abstractmethod
    def exists(self, **kwargs: Any) -> bool:
        """True when any entity matches the exact-match criteria."""

    @abstractmethod
    def count(self, **kwargs: Any) -> int:
        """Number of entities matching the exact-match criteria."""


class BaseRepository(IRepository[T]):
    """
    Default CRUD implementation over a single model.

    Subclasses add domain queries and override ``_apply_eager_loading`` to
    declare which relationships to load with ``get_by_id``.
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def _fail(self, action: str, exc: Exception) -> RepositoryException:
        self.logger.error("Error %s %s: %s", action, self.model.__name__, exc)
        return RepositoryException(f"Failed to {action} {self.model.__name__}: {exc}")

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        try:
            query = self.db.query(self.model).filter(self.model.id == id)  # type: ignore[attr-defined]
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as e:
            raise self._fail("retrieve", e) from e

    def get_all(self, skip: int = 0, limit: int = 100) -> List[T]:
        try:
            return self.db.query(self.model).offset(skip).limit(limit).all()
        except SQLAlchemyError as e:
            raise self._fail("list", e) from e

    def create(self, **kwargs: Any) -> T:
        """Add and flush. Does NOT commit."""
        try:
            entity = self.model(**{key: column_value(value) for key, value in kwargs.items()})
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.db.rollback()
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            raise RepositoryException(f"Integrity constraint violated: {exc.orig}") from exc
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("create", e) from e

    def update(self, id: str, **kwargs: Any) -> Optional[T]:
        """Update only the provided fields."""
        try:
            entity = self.get_by_id(id, load_relationships=False)
            if entity is None:
                return None
            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, column_value(value))
            self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("update", e) from e

    def delete(self, id: str) -> bool:
        try:
            entity = self.get_by_id(id, load_relationships=False)
            if entity is None:
                return False
            self.db.delete(entity)
            self.db.flush()
            return True
        except IntegrityError as e:
            self.db.rollback()
            self.logger.error("Cannot delete %s %s: %s", self.model.__name__, id, e)
            raise RepositoryException(f"Cannot delete due to existing references: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._fail("delete", e) from e

    def exists(self, **kwargs: Any) -> bool:
        try:
            return self.db.query(self.model).filter_by(**kwargs).first() is not None
        except SQLAlchemyError as e:
            raise self._fail("check", e) from e

    def count(self, **kwargs: Any) -> int:
        try:
            return self.db.query(self.model).filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            raise self._fail("count", e) from e

    def find_by(self, **kwargs: Any) -> List[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).all()
        except SQLAlchemyError as e:
            raise self._fail("find", e) from e

    def find_one_by(self, **kwargs: Any) -> Optional[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            raise self._fail("find", e) from e

    def bulk_create(self, entities: List[Dict[str, Any]]) -> List[T]:
        try:
            db_entities = [self.model(**data) for data in entities]
            self.db.add_all(db_entities)
            self.db.flush()
            return db_entities
        except SQLAlchemyError as e:
            raise self._fail("bulk create", e) from e

    def flush(self) -> None:
        self.db.flush()

    def refresh(self, instance: T) -> None:
        self.db.refresh(instance)

    # Protected helpers for subclasses

    def _apply_eager_loading(self, query: Query) -> Query:
        return query

    def _build_query(self) -> Query:
        return self.db.query(self.model)

    def _paginate(self, query: Query, page: int, per_page: int) -> Tuple[List[T], int]:
        """Return one page of ``query`` plus the unpaginated total."""
        try:
            total = query.order_by(None).count()
            items = query.offset((page - 1) * per_page).limit(per_page).all()
            return items, total
        except SQLAlchemyError as e:
            raise self._fail("paginate", e) from e

    def _execute_query(self, query: Query) -> List[Any]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            raise self._fail("query", e) from e

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            raise self._fail("query", e) from e
