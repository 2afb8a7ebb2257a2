"""
soulycore.core.pipelines.run_logger - Pipeline Run/Step Logger

Durable audit trail for pipeline executions. A run row is created with status
``running`` before the pipeline starts; each logical step is written exactly
once when it completes or fails; the run is then closed as ``completed`` or
``failed``. Every write commits in its own transaction so a crash mid-pipeline
still leaves the steps that finished.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from soulycore.core.memory.exceptions import storage_errors
from soulycore.models.base import utcnow
from soulycore.models.pipeline import PipelineRun, PipelineRunStep, PipelineRunType, RunStatus

T = TypeVar("T")

BACKEND = "run_log"


def to_payload(value: Any) -> Any:
    """Convert a step input/output into something the JSON column accepts."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return to_jsonable_python(value, fallback=str)


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((_as_utc(end) - _as_utc(start)).total_seconds() * 1000)


class RunLogger:
    """
    Writes and reads PipelineRun / PipelineRunStep rows.

    Example:
        >>> run_logger = RunLogger(session_factory)
        >>> run_id = await run_logger.create_run(PipelineRunType.MEMORY_EXTRACTION)
        >>> data = await run_logger.run_step(
        ...     run_id, 1, "ExtractDataWithLLM", lambda: extractor.extract(text),
        ...     input_payload={"text": text},
        ... )
        >>> await run_logger.complete_run(run_id, "Stored 1 entities.")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.logger = logger or logging.getLogger(__name__)

    async def create_run(self, run_type: PipelineRunType | str) -> UUID:
        """Insert a run in ``running`` state and return its id."""
        run = PipelineRun(
            run_type=PipelineRunType(run_type).value,
            status=RunStatus.RUNNING.value,
            start_time=utcnow(),
        )
        async with storage_errors(BACKEND), self.session_factory() as session:
            session.add(run)
            await session.commit()

        self.logger.debug(
            f"Started {run.run_type} run", extra={"run_id": str(run.id), "run_type": run.run_type}
        )
        return run.id

    async def run_step(
        self,
        run_id: UUID,
        step_order: int,
        step_name: str,
        func: Callable[[], Awaitable[T]],
        input_payload: Any = None,
        output: Callable[[T], Any] | None = None,
    ) -> T:
        """
        Execute one step and record its outcome.

        The step row is written after ``func`` returns (status ``completed``,
        output, duration) or raises (status ``failed``, error message,
        duration). A failure is re-raised so the caller aborts the remaining
        steps.

        Args:
            run_id: Parent run
            step_order: 1-based position of the step in the run
            step_name: Logical step name
            func: Zero-argument coroutine function performing the step
            input_payload: JSON-compatible description of the step input
            output: Maps the step result to its recorded output (result itself if None)

        Returns:
            Whatever ``func`` returned
        """
        started = time.perf_counter()
        try:
            result = await func()
        except Exception as e:
            duration_ms = int((time.perf_counter() - started) * 1000)
            self.logger.warning(
                f"Step {step_name} failed: {e}",
                extra={"run_id": str(run_id), "step_name": step_name},
            )
            try:
                await self.record_step(
                    run_id,
                    step_order,
                    step_name,
                    RunStatus.FAILED,
                    input_payload=input_payload,
                    error_message=str(e) or type(e).__name__,
                    duration_ms=duration_ms,
                )
            except Exception:
                self.logger.error(
                    f"Could not record failure of step {step_name}",
                    exc_info=True,
                    extra={"run_id": str(run_id)},
                )
            raise

        duration_ms = int((time.perf_counter() - started) * 1000)
        await self.record_step(
            run_id,
            step_order,
            step_name,
            RunStatus.COMPLETED,
            input_payload=input_payload,
            output_payload=output(result) if output else result,
            duration_ms=duration_ms,
        )
        return result

    async def record_step(
        self,
        run_id: UUID,
        step_order: int,
        step_name: str,
        status: RunStatus,
        duration_ms: int,
        input_payload: Any = None,
        output_payload: Any = None,
        error_message: str | None = None,
    ) -> None:
        """
        Append one terminal step row in its own transaction.

        Used by ``run_step`` and by callers that time their own steps.
        """
        step = PipelineRunStep(
            run_id=run_id,
            step_order=step_order,
            step_name=step_name,
            status=status.value,
            input_payload=to_payload(input_payload),
            output_payload=to_payload(output_payload),
            error_message=error_message,
            duration_ms=duration_ms,
        )
        async with storage_errors(BACKEND), self.session_factory() as session:
            session.add(step)
            await session.commit()

    async def complete_run(self, run_id: UUID, final_output: str | None = None) -> None:
        """Mark a running run ``completed``."""
        await self._close_run(run_id, RunStatus.COMPLETED, final_output=final_output)

    async def fail_run(self, run_id: UUID, error: BaseException | str) -> None:
        """Mark a running run ``failed`` with the error message."""
        message = error if isinstance(error, str) else (str(error) or type(error).__name__)
        await self._close_run(run_id, RunStatus.FAILED, error_message=message)

    async def _close_run(
        self,
        run_id: UUID,
        status: RunStatus,
        final_output: str | None = None,
        error_message: str | None = None,
    ) -> None:
        async with storage_errors(BACKEND), self.session_factory() as session:
            run = await session.get(PipelineRun, run_id)
            if run is None:
                raise LookupError(f"Pipeline run {run_id} does not exist")
            if run.status != RunStatus.RUNNING.value:
                self.logger.warning(
                    f"Run {run_id} already {run.status}, not marking {status.value}",
                    extra={"run_id": str(run_id)},
                )
                return

            end_time = utcnow()
            run.status = status.value
            run.end_time = end_time
            run.duration_ms = _elapsed_ms(run.start_time, end_time)
            run.final_output = final_output
            run.error_message = error_message
            await session.commit()

        self.logger.info(
            f"{run.run_type} run {status.value} in {run.duration_ms}ms",
            extra={"run_id": str(run_id), "status": status.value},
        )

    async def get_run(self, run_id: UUID) -> PipelineRun | None:
        """Load a run with its steps in step order."""
        async with storage_errors(BACKEND), self.session_factory() as session:
            result = await session.execute(
                select(PipelineRun)
                .where(PipelineRun.id == run_id)
                .options(selectinload(PipelineRun.steps))
            )
            return result.scalar_one_or_none()

    async def list_runs(
        self,
        run_type: PipelineRunType | str | None = None,
        limit: int = 50,
    ) -> list[PipelineRun]:
        """Most recent runs first, optionally filtered by type."""
        query = select(PipelineRun)
        if run_type is not None:
            query = query.where(PipelineRun.run_type == PipelineRunType(run_type).value)
        query = query.order_by(PipelineRun.start_time.desc()).limit(limit)

        async with storage_errors(BACKEND), self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())


__all__ = ["RunLogger", "to_payload"]
