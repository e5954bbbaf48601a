"""
Progress and result models for an import run.

An ImportRunContext is created for one scheduler run and owned by it; nothing
here is shared between runs.
"""

from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import PageMaterializationError, PipelineError, ReferenceResolutionError


class SchedulerState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    RESOLVED = "resolved"


class ImportProgress(BaseModel):
    """
    Live progress of an import run, readable by any observer.
    """

    total: int = Field(
        default=0,
        description="Number of pages in the batch"
    )

    current_index: int = Field(
        default=0,
        description="1-based index of the page currently being imported"
    )

    current_page: Optional[str] = Field(
        default=None,
        description="Title of the page currently being imported"
    )


class PageOutcome(BaseModel):
    """
    Result of materializing one page: its title, and the error if it failed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: Optional[int] = None
    title: Optional[str] = None
    error: Optional[PageMaterializationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResolutionOutcome(BaseModel):
    """Result of the post-batch reference resolution pass."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    referenced: int = 0
    updated: int = 0
    error: Optional[ReferenceResolutionError] = None


class ImportReport(BaseModel):
    """
    Aggregate report of an import run returned to the caller.

    A report with page failures is still a completed import; only a fatal
    error means nothing was imported.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total: int = 0
    outcomes: List[PageOutcome] = Field(default_factory=list)
    resolution: Optional[ResolutionOutcome] = None
    fatal_error: Optional[PipelineError] = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.fatal_error is None

    @property
    def imported_titles(self) -> List[Optional[str]]:
        return [outcome.title for outcome in self.outcomes if outcome.ok]

    @property
    def failures(self) -> List[PageOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


ProgressCallback = Callable[[ImportProgress], Any]


class ImportRunContext:
    """
    State of a single scheduler run.

    The scheduler is the only writer; observers may read ``progress`` at any
    time or register a callback that is called after every update.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self.progress = ImportProgress()
        self.state = SchedulerState.IDLE
        self.outcomes: List[PageOutcome] = []
        self.cancel_requested = False
        self._on_progress = on_progress

    def publish(self, **changes: Any) -> None:
        """Apply progress changes and notify the observer."""
        for key, value in changes.items():
            setattr(self.progress, key, value)
        if self._on_progress:
            self._on_progress(self.progress.model_copy())

    def cancel(self) -> None:
        """
        Request cancellation. Honored at the next inter-job yield; the page
        being materialized at that moment always finishes first.

        Progress for a job is published before its yield, so after a
        cancellation ``progress`` still names the page that was dequeued but
        never attempted. ``progress`` never moves backwards; the attempted
        pages are the ones in ``outcomes``.
        """
        self.cancel_requested = True
