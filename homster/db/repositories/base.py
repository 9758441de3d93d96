"""
Base repository with common CRUD operations.

Provides generic database operations that can be inherited by specific repositories.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, Table, delete, func, select, update
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT", bound=BaseModel)


def as_uuid(value: UUID | str) -> UUID:
    """Coerce a string ID to UUID."""
    return value if isinstance(value, UUID) else UUID(value)


def optional_uuid(value: UUID | str | None) -> UUID | None:
    return None if value is None else as_uuid(value)


def optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def model_to_jsonb(model: BaseModel | None) -> dict | None:
    """Serialize Pydantic model for JSONB storage."""
    if model is None:
        return None
    return model.model_dump(mode="json")


def jsonb_to_model(data: dict | None, model_class: type[ModelT]) -> ModelT | None:
    """Deserialize JSONB to Pydantic model."""
    if data is None:
        return None
    return model_class.model_validate(data)


class BaseRepository(ABC, Generic[ModelT]):
    """
    Base repository with common CRUD operations.

    Subclasses must implement:
    - table property: Return the SQLAlchemy Table
    - _row_to_model: Convert database row to Pydantic model
    - _model_to_dict: Convert Pydantic model to database dict
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def table(self) -> Table:
        """SQLAlchemy table for this repository."""
        pass

    @abstractmethod
    def _row_to_model(self, row: Any) -> ModelT:
        """Convert database row to Pydantic model."""
        pass

    @abstractmethod
    def _model_to_dict(self, model: ModelT) -> dict:
        """Convert Pydantic model to database dict."""
        pass

    def get_by_id(self, id: UUID | str) -> ModelT | None:
        """
        Get entity by ID.

        Args:
            id: UUID of the entity

        Returns:
            Pydantic model or None if not found
        """
        stmt = select(self.table).where(self.table.c.id == as_uuid(id))
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def create(self, model: ModelT) -> ModelT:
        """
        Insert a new entity.

        Args:
            model: Pydantic model to create

        Returns:
            Created model as stored
        """
        data = self._model_to_dict(model)
        stmt = self.table.insert().values(**data).returning(self.table)
        row = self.session.execute(stmt).fetchone()
        return self._row_to_model(row)

    def update_by_id(self, id: UUID | str, **kwargs) -> bool:
        """
        Update entity by ID with specific fields.

        Args:
            id: UUID of the entity
            **kwargs: Column values to set

        Returns:
            True if entity was updated, False if not found
        """
        stmt = update(self.table).where(self.table.c.id == as_uuid(id)).values(**kwargs)
        result = self.session.execute(stmt)
        return result.rowcount > 0

    def update_returning(self, id: UUID | str, *conditions, **kwargs) -> ModelT | None:
        """
        Conditionally update one entity and return its new state.

        The update only applies when every extra condition holds, which makes
        it safe for compare-and-set transitions under concurrency.

        Args:
            id: UUID of the entity
            *conditions: Additional WHERE clauses
            **kwargs: Column values to set

        Returns:
            Updated model, or None when no row matched
        """
        stmt = (
            update(self.table)
            .where(self.table.c.id == as_uuid(id), *conditions)
            .values(**kwargs)
            .returning(self.table)
        )
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def delete_by_id(self, id: UUID | str) -> bool:
        """
        Delete entity by ID.

        Args:
            id: UUID of the entity

        Returns:
            True if entity was deleted, False if not found
        """
        stmt = delete(self.table).where(self.table.c.id == as_uuid(id))
        result = self.session.execute(stmt)
        return result.rowcount > 0

    def _fetch_all(self, stmt: Select) -> list[ModelT]:
        return [self._row_to_model(row) for row in self.session.execute(stmt).fetchall()]

    def _count(self, *conditions) -> int:
        stmt = select(func.count()).select_from(self.table).where(*conditions)
        return self.session.execute(stmt).scalar() or 0


class AccountRepository(BaseRepository[ModelT]):
    """Base for account tables that sign in by phone and password."""

    def get_by_phone(self, phone: str) -> ModelT | None:
        stmt = select(self.table).where(self.table.c.phone == phone)
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row)

    def get_credentials(self, phone: str) -> tuple[ModelT, str] | None:
        """
        Look up an account and its password hash by phone.

        Args:
            phone: Login phone number

        Returns:
            Tuple of (account, password_hash) or None if not registered
        """
        stmt = select(self.table).where(self.table.c.phone == phone)
        row = self.session.execute(stmt).fetchone()
        if row is None:
            return None
        return self._row_to_model(row), row.password_hash

    def register(self, model: ModelT, password_hash: str) -> ModelT:
        """Insert an account together with its password hash."""
        data = self._model_to_dict(model)
        data["password_hash"] = password_hash
        stmt = self.table.insert().values(**data).returning(self.table)
        row = self.session.execute(stmt).fetchone()
        return self._row_to_model(row)
