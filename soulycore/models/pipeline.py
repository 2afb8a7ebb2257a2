"""
soulycore.models.pipeline - Pipeline Run Models

Audit trail for pipeline executions:
- PipelineRun: one row per pipeline invocation
- PipelineRunStep: one row per logical step inside a run (append-only)

The Cognitive Inspector reads these tables to show what context was sent to
the model and what was extracted afterwards.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soulycore.models.base import IdentifiedModel, JSONType, utcnow


class PipelineRunType(StrEnum):
    """Pipelines that record runs."""

    CONTEXT_ASSEMBLY = "ContextAssembly"
    MEMORY_EXTRACTION = "MemoryExtraction"


class RunStatus(StrEnum):
    """Lifecycle status shared by runs and steps."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineRun(IdentifiedModel):
    """
    One pipeline invocation.

    Created with status ``running`` before the pipeline starts and moved to
    ``completed`` or ``failed`` exactly once.

    Example:
        >>> run = PipelineRun(run_type=PipelineRunType.MEMORY_EXTRACTION)
    """

    __tablename__ = "pipeline_runs"

    run_type: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="ContextAssembly | MemoryExtraction"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RunStatus.RUNNING.value,
        comment="running | completed | failed",
    )

    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    final_output: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Human-readable summary of the run result"
    )

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    steps: Mapped[list["PipelineRunStep"]] = relationship(
        "PipelineRunStep",
        back_populates="run",
        order_by="PipelineRunStep.step_order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_pipeline_runs_type_start", "run_type", "start_time"),)

    def __repr__(self) -> str:
        return f"<PipelineRun(id={self.id}, type={self.run_type}, status={self.status})>"


class PipelineRunStep(IdentifiedModel):
    """
    One logical step inside a run.

    Written once, when the step completes or fails. Never updated.
    """

    __tablename__ = "pipeline_run_steps"

    run_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pipeline_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    step_order: Mapped[int] = mapped_column(Integer, nullable=False)

    step_name: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="completed | failed")

    input_payload: Mapped[Any | None] = mapped_column(JSONType, nullable=True)

    output_payload: Mapped[Any | None] = mapped_column(JSONType, nullable=True)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    run: Mapped[PipelineRun] = relationship("PipelineRun", back_populates="steps")

    __table_args__ = (UniqueConstraint("run_id", "step_order", name="uq_run_steps_order"),)

    def __repr__(self) -> str:
        return (
            f"<PipelineRunStep(run={self.run_id}, order={self.step_order}, "
            f"name={self.step_name})>"
        )


__all__ = ["PipelineRun", "PipelineRunStep", "PipelineRunType", "RunStatus"]
