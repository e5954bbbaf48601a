"""
Error taxonomy for the import pipeline.

Fatal errors (malformed input, pre-registration) abort an import before any
page job runs. Page materialization and reference resolution errors are
reported and never propagate past the page boundary.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for every error raised by the import pipeline."""

    fatal = False


class MalformedInputError(PipelineError):
    """The payload cannot be parsed into a tree at all."""

    fatal = True


class PreRegistrationError(PipelineError):
    """The bulk identifier write failed; no page has been touched yet."""

    fatal = True


class PageMaterializationError(PipelineError):
    """
    Creating a page or inserting its content failed.

    Carries the offending node so the failure can be diagnosed from the log.
    """

    def __init__(self, title: Optional[str], stage: str, cause: BaseException,
                 node: Optional[Dict[str, Any]] = None):
        self.title = title
        self.stage = stage
        self.cause = cause
        self.node = node
        super().__init__(f"Failed to import {stage} of page {title!r}: {cause}")


class ReferenceResolutionError(PipelineError):
    """The post-batch identifier fixup failed."""


class StoreError(Exception):
    """The graph store rejected a write."""
