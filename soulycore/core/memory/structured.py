"""
soulycore.core.memory.structured - Structured Memory Module

Entities and contacts in the relational store. Both kinds are upserted by
their natural identity using the database's native insert-or-update, so
concurrent extraction runs touching the same identity converge to one row
(last write wins).

Identity:
- entity:  (name, type)  - conflict updates details and refreshes created_at
- contact: (name, email) - conflict updates company, phone, notes, tags
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from soulycore.core.memory.base import MemoryModule
from soulycore.core.memory.exceptions import ValidationError, storage_errors
from soulycore.core.memory.types import (
    ContactRecord,
    EntityRecord,
    StructuredFilter,
    structured_record_adapter,
)
from soulycore.models.base import utcnow
from soulycore.models.memory import Contact, Entity

# Stored when an entity arrives without details
EMPTY_DETAILS = "{}"

_MODELS: dict[str, type[Entity] | type[Contact]] = {"entity": Entity, "contact": Contact}


def _insert_for(session: AsyncSession, model: type[Any]) -> Any:
    """Dialect-specific INSERT supporting ON CONFLICT DO UPDATE."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported on dialect {dialect!r}")


class StructuredMemoryModule(
    MemoryModule[EntityRecord | ContactRecord, StructuredFilter, Entity | Contact]
):
    """
    Entity and contact store.

    Example:
        >>> structured = StructuredMemoryModule(session_factory)
        >>> await structured.store(
        ...     {"kind": "entity", "data": {"name": "Alice", "type": "Person"}}
        ... )
        >>> entities = await structured.query(StructuredFilter(kind="entity"))
    """

    backend = "structured"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.session_factory = session_factory

    @staticmethod
    def validate(
        record: EntityRecord | ContactRecord | dict[str, Any],
    ) -> EntityRecord | ContactRecord:
        """
        Coerce raw input into a tagged record.

        Raises:
            ValidationError: If the kind is unknown or required identity fields are missing
        """
        if isinstance(record, EntityRecord | ContactRecord):
            return record
        try:
            return structured_record_adapter.validate_python(record)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid structured record: {e}") from e

    async def store(self, record: EntityRecord | ContactRecord | dict[str, Any]) -> UUID:
        """
        Upsert an entity or contact.

        Args:
            record: Tagged record, or a dict of the same shape

        Returns:
            Id of the inserted or updated row
        """
        record = self.validate(record)

        async with storage_errors(self.backend), self.session_factory() as session:
            if isinstance(record, EntityRecord):
                stmt = self._entity_upsert(session, record)
            else:
                stmt = self._contact_upsert(session, record)
            result = await session.execute(stmt)
            row_id = result.scalar_one()
            await session.commit()

        self.logger.debug(
            f"Stored {record.kind}",
            extra={"kind": record.kind, "record_id": str(row_id), "record_name": record.data.name},
        )
        return row_id

    def _entity_upsert(self, session: AsyncSession, record: EntityRecord) -> Any:
        data = record.data
        now = utcnow()
        stmt = _insert_for(session, Entity).values(
            id=data.id or uuid4(),
            name=data.name,
            type=data.type,
            details=data.details if data.details is not None else EMPTY_DETAILS,
            created_at=now,
        )
        return stmt.on_conflict_do_update(
            index_elements=["name", "type"],
            set_={"details": stmt.excluded.details, "created_at": now},
        ).returning(Entity.id)

    def _contact_upsert(self, session: AsyncSession, record: ContactRecord) -> Any:
        data = record.data
        stmt = _insert_for(session, Contact).values(
            id=data.id or uuid4(),
            name=data.name,
            email=data.email or None,
            company=data.company or None,
            phone=data.phone or None,
            notes=data.notes or None,
            tags=data.tags or None,
            created_at=utcnow(),
        )
        return stmt.on_conflict_do_update(
            index_elements=["name", "email"],
            set_={
                "company": stmt.excluded.company,
                "phone": stmt.excluded.phone,
                "notes": stmt.excluded.notes,
                "tags": stmt.excluded.tags,
            },
        ).returning(Contact.id)

    async def query(self, filter: StructuredFilter) -> list[Entity | Contact]:
        """
        Fetch entities or contacts.

        Without ``id`` or ``name`` every record of the kind is returned:
        entities newest first, contacts by name. ``name`` applies to
        contacts only.
        """
        model = _MODELS[filter.kind]
        stmt = select(model)

        if filter.id is not None:
            stmt = stmt.where(model.id == filter.id)
        elif filter.name and filter.kind == "contact":
            stmt = stmt.where(Contact.name.icontains(filter.name, autoescape=True))

        if filter.kind == "entity":
            stmt = stmt.order_by(Entity.created_at.desc(), Entity.name)
        else:
            stmt = stmt.order_by(Contact.name, Contact.created_at)

        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete(self, kind: str, id: UUID) -> int:
        """
        Hard-delete by primary key.

        Returns:
            Rows removed; 0 means no such record
        """
        model = _MODELS.get(kind)
        if model is None:
            raise ValidationError(f"Unsupported structured kind: {kind!r}")

        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(delete(model).where(model.id == id))
            await session.commit()
            deleted = result.rowcount

        if not deleted:
            self.logger.info(f"No {kind} with id {id} to delete")
        return deleted


__all__ = ["StructuredMemoryModule"]
