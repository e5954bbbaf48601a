"""
pagegraft: imports exported page trees into a page/block graph store.

Converts Logseq EDN/JSON exports and OPML outlines into canonical trees and
materializes them page by page, isolating per-page failures.
"""

__version__ = "0.1.0"
__author__ = "pagegraft Project"

# Import main components
from .database import GraphStore
from .errors import (
    MalformedInputError,
    PageMaterializationError,
    PipelineError,
    PreRegistrationError,
    ReferenceResolutionError,
    StoreError,
)
from .handler import ImportHandler
from .importers import BaseAdapter, LogseqEDNAdapter, LogseqJSONAdapter, OPMLAdapter, get_adapter
from .models import CanonicalNode, ImportBatch, ImportReport, ImportRunContext
from .notifications import Notifier, RecordingNotifier

__all__ = [
    "GraphStore",
    "MalformedInputError",
    "PageMaterializationError",
    "PipelineError",
    "PreRegistrationError",
    "ReferenceResolutionError",
    "StoreError",
    "ImportHandler",
    "BaseAdapter",
    "LogseqEDNAdapter",
    "LogseqJSONAdapter",
    "OPMLAdapter",
    "get_adapter",
    "CanonicalNode",
    "ImportBatch",
    "ImportReport",
    "ImportRunContext",
    "Notifier",
    "RecordingNotifier",
]
