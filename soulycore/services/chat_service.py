"""
soulycore.services.chat_service - Chat turn orchestration

Drives one conversational turn through the memory core:

    history -> append user turn -> assemble context -> generate reply
            -> append model turn -> submit extraction (background)

Context assembly never blocks the reply: any failure there becomes an empty
context. Extraction is submitted to the BackgroundTaskRunner and is never
awaited here. Episodic storage failures propagate; losing the transcript
silently is worse than failing the turn.
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from pydantic import BaseModel, Field

from soulycore.core.memory import EpisodicFilter, EpisodicMemoryModule, EpisodicRecord
from soulycore.core.pipelines import (
    AssembledContext,
    BackgroundTaskRunner,
    ContextAssemblyPipeline,
    MemoryExtractionPipeline,
)
from soulycore.core.pipelines.context_assembly import ContactLike
from soulycore.llm import LLMService, Message

# Episodic role -> LLM message role
ROLE_MAP = {"user": "user", "model": "assistant"}


class ChatTurnResult(BaseModel):
    """Outcome of one turn."""

    conversation_id: UUID
    reply: str
    context: str = ""
    degraded_sources: list[str] = Field(default_factory=list)
    user_message_id: UUID | None = None
    model_message_id: UUID | None = None
    extraction_submitted: bool = False


def build_turn_text(user_message: str, reply: str) -> str:
    """Text handed to memory extraction for one turn."""
    return f"User: {user_message}\nModel: {reply}"


def build_prompt(context: str, user_message: str) -> str:
    """Prepend the context block, if any, to the user's message."""
    if not context:
        return user_message
    return f"{context}\n\n{user_message}"


class ChatService:
    """
    Per-turn chat flow.

    Example:
        >>> service = ChatService(llm, core.episodic, core.context_pipeline,
        ...                       core.extraction_pipeline, BackgroundTaskRunner())
        >>> result = await service.handle_turn(conv_id, "Who is Alice?")
        >>> print(result.reply)
    """

    def __init__(
        self,
        llm_service: LLMService,
        episodic: EpisodicMemoryModule,
        context_pipeline: ContextAssemblyPipeline,
        extraction_pipeline: MemoryExtractionPipeline | None = None,
        task_runner: BackgroundTaskRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.llm_service = llm_service
        self.episodic = episodic
        self.context_pipeline = context_pipeline
        self.extraction_pipeline = extraction_pipeline
        self.task_runner = task_runner or BackgroundTaskRunner()
        self.logger = logger or logging.getLogger(__name__)

    async def handle_turn(
        self,
        conversation_id: UUID,
        user_message: str,
        mentioned_contacts: Sequence[ContactLike] | None = None,
        system_prompt: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> ChatTurnResult:
        """
        Run one turn and return the model's reply.

        Raises:
            StorageUnavailable: If the conversation transcript cannot be read or written
        """
        log_extra = {"conversation_id": str(conversation_id)}

        history = await self.episodic.query(EpisodicFilter(conversation_id=conversation_id))
        user_turn = await self.episodic.store(
            EpisodicRecord(conversation_id=conversation_id, role="user", content=user_message)
        )

        assembled = await self._assemble_context(conversation_id, user_message, mentioned_contacts)

        messages = [Message(role=ROLE_MAP[turn.role], content=turn.content) for turn in history]
        messages.append(Message(role="user", content=build_prompt(assembled.text, user_message)))

        response = await self.llm_service.generate(
            messages,
            system=system_prompt,
            temperature=temperature,
            top_p=top_p,
        )
        reply = response.content

        model_turn = await self.episodic.store(
            EpisodicRecord(
                conversation_id=conversation_id,
                role="model",
                content=reply,
                token_count=response.usage.output_tokens,
            )
        )

        submitted = self._submit_extraction(conversation_id, user_message, reply)
        self.logger.info(
            "Chat turn completed",
            extra={**log_extra, "context_chars": len(assembled.text), "extraction": submitted},
        )

        return ChatTurnResult(
            conversation_id=conversation_id,
            reply=reply,
            context=assembled.text,
            degraded_sources=assembled.degraded_sources,
            user_message_id=user_turn.id,
            model_message_id=model_turn.id,
            extraction_submitted=submitted,
        )

    async def _assemble_context(
        self,
        conversation_id: UUID,
        user_message: str,
        mentioned_contacts: Sequence[ContactLike] | None,
    ) -> AssembledContext:
        try:
            return await self.context_pipeline.assemble(
                conversation_id, user_message, mentioned_contacts
            )
        except Exception as e:
            # A missing context is preferable to a blocked reply
            self.logger.error(
                f"Context assembly failed, continuing without context: {e}",
                exc_info=True,
                extra={"conversation_id": str(conversation_id)},
            )
            return AssembledContext()

    def _submit_extraction(self, conversation_id: UUID, user_message: str, reply: str) -> bool:
        if self.extraction_pipeline is None:
            return False
        self.task_runner.submit(
            f"memory-extraction:{conversation_id}",
            self.extraction_pipeline.run(build_turn_text(user_message, reply)),
        )
        return True


__all__ = ["ChatService", "ChatTurnResult", "build_prompt", "build_turn_text"]
