"""Progress tracking types shared across CLI and services."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStage(str, Enum):
    """Lifecycle stages for a channel or playlist ingestion run."""

    RESOLVING = "resolving"
    LISTING = "listing"
    FETCHING = "fetching"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"


class ProgressUpdate(BaseModel):
    """Structured progress payload for UI rendering and logging."""

    stage: ProcessingStage
    stage_progress: int = Field(ge=0, le=100)
    overall_progress: int = Field(ge=0, le=100)
    message: str
    source: str

    model_config = ConfigDict(extra="forbid")


ProgressHandler = Callable[[ProgressUpdate], None]


def emit_progress(
    callback: Optional[ProgressHandler],
    stage: ProcessingStage,
    stage_progress: int,
    overall_progress: int,
    message: str,
    source: str,
) -> None:
    """Invoke ``callback`` with a progress update if one has been provided."""

    if callback is None:
        return
    callback(
        ProgressUpdate(
            stage=stage,
            stage_progress=stage_progress,
            overall_progress=overall_progress,
            message=message,
            source=source,
        )
    )


__all__ = ["ProcessingStage", "ProgressHandler", "ProgressUpdate", "emit_progress"]
