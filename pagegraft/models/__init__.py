"""Data models for pagegraft."""

from .canonical import CanonicalNode, ContentFormat, ImportBatch, ImportJob, NodeKind
from .progress import (
    ImportProgress,
    ImportReport,
    ImportRunContext,
    PageOutcome,
    ProgressCallback,
    ResolutionOutcome,
    SchedulerState,
)

__all__ = [
    "CanonicalNode",
    "ContentFormat",
    "ImportBatch",
    "ImportJob",
    "NodeKind",
    "ImportProgress",
    "ImportReport",
    "ImportRunContext",
    "PageOutcome",
    "ProgressCallback",
    "ResolutionOutcome",
    "SchedulerState",
]
