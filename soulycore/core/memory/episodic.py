"""
soulycore.core.memory.episodic - Episodic Memory Module

Append-only store of conversation turns. Each turn receives the next
``turn_index`` within its conversation, so reads return turns in exactly the
order they were submitted.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from soulycore.core.memory.base import MemoryModule
from soulycore.core.memory.exceptions import storage_errors
from soulycore.core.memory.types import EpisodicFilter, EpisodicRecord
from soulycore.models.memory import Message

# Attempts to claim a turn_index when two appends race for the same slot
MAX_APPEND_ATTEMPTS = 3


class EpisodicMemoryModule(MemoryModule[EpisodicRecord, EpisodicFilter, Message]):
    """
    Conversation transcript store.

    Example:
        >>> episodic = EpisodicMemoryModule(session_factory)
        >>> await episodic.store(
        ...     EpisodicRecord(conversation_id=conv_id, role="user", content="Hi")
        ... )
        >>> turns = await episodic.query(EpisodicFilter(conversation_id=conv_id))
    """

    backend = "episodic"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.session_factory = session_factory

    async def store(self, record: EpisodicRecord) -> Message:
        """
        Append a turn to its conversation.

        Raises:
            StorageUnavailable: If the message store cannot be reached
        """
        attempt = 1
        while True:
            try:
                message = await self._append(record)
                break
            except IntegrityError:
                # Another append claimed this turn_index first
                if attempt >= MAX_APPEND_ATTEMPTS:
                    raise
                self.logger.debug(
                    "Turn index conflict, retrying append",
                    extra={"conversation_id": str(record.conversation_id), "attempt": attempt},
                )
                attempt += 1

        self.logger.debug(
            "Appended turn",
            extra={
                "conversation_id": str(record.conversation_id),
                "turn_index": message.turn_index,
                "role": record.role,
            },
        )
        return message

    async def _append(self, record: EpisodicRecord) -> Message:
        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(
                select(func.max(Message.turn_index)).where(
                    Message.conversation_id == record.conversation_id
                )
            )
            last_index = result.scalar_one_or_none()

            message = Message(
                conversation_id=record.conversation_id,
                role=record.role,
                content=record.content,
                turn_index=0 if last_index is None else last_index + 1,
                token_count=record.token_count,
                is_bookmarked=record.is_bookmarked,
            )
            session.add(message)
            await session.commit()
            return message

    async def query(self, filter: EpisodicFilter) -> list[Message]:
        """Return every turn of the conversation in chronological order."""
        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(
                select(Message)
                .where(Message.conversation_id == filter.conversation_id)
                .order_by(Message.turn_index, Message.created_at)
            )
            return list(result.scalars().all())

    async def delete(self, message_id: UUID) -> int:
        """Remove one turn. Returns 0 when no such turn exists."""
        async with storage_errors(self.backend), self.session_factory() as session:
            result = await session.execute(delete(Message).where(Message.id == message_id))
            await session.commit()
            return result.rowcount


__all__ = ["EpisodicMemoryModule"]
