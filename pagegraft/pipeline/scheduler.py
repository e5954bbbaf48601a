"""
Import scheduler.

Drives the per-page jobs of a batch one at a time on the event loop. Control
is handed back to the host before every job so a single-threaded host stays
responsive during long imports.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Optional

from ..models import (
    ImportBatch,
    ImportJob,
    ImportReport,
    ImportRunContext,
    ProgressCallback,
    SchedulerState,
)
from .materializer import PageMaterializer
from .resolver import ReferenceResolver

YieldFn = Callable[[], Awaitable[None]]


async def no_yield() -> None:
    """Yield function for hosts without a UI (CLI, server)."""


def sleep_yield(delay: float) -> YieldFn:
    """
    Build a yield function that pauses for ``delay`` seconds.

    ``asyncio.sleep(0)`` still hands control to other tasks, so a zero delay
    is a valid choice.
    """
    async def _yield() -> None:
        await asyncio.sleep(delay)
    return _yield


class ImportScheduler:
    """
    Runs a batch through the materializer sequentially, then resolves
    references once.
    """

    def __init__(self, materializer: PageMaterializer, resolver: ReferenceResolver,
                 yield_fn: YieldFn = no_yield, on_progress: Optional[ProgressCallback] = None):
        self.materializer = materializer
        self.resolver = resolver
        self.yield_fn = yield_fn
        self.on_progress = on_progress

    async def run(self, batch: ImportBatch, context: Optional[ImportRunContext] = None) -> ImportReport:
        """
        Import every page of the batch.

        Args:
            batch: The sorted batch to import
            context: Run context to publish progress to; created if omitted

        Returns:
            Report with one outcome per attempted page and the resolution result
        """
        context = context or ImportRunContext(self.on_progress)
        queue: Deque[ImportJob] = deque(batch.jobs())
        context.publish(total=len(batch), current_index=0)
        logging.info(f"Importing {len(batch)} pages")

        while queue:
            job = queue.popleft()
            context.state = SchedulerState.DISPATCHING
            context.publish(current_index=job.index + 1, current_page=job.page.title)

            await self.yield_fn()
            if context.cancel_requested:
                logging.warning(f"Import cancelled before page {job.index + 1} of {len(batch)}")
                break

            outcome = self.materializer.materialize(job.page, job.index)
            context.outcomes.append(outcome)

        context.state = SchedulerState.DRAINING
        resolution = self.resolver.resolve()
        context.state = SchedulerState.RESOLVED

        report = ImportReport(
            total=len(batch),
            outcomes=list(context.outcomes),
            resolution=resolution,
            cancelled=context.cancel_requested,
        )
        logging.info(f"Import finished: {len(report.imported_titles)} imported, "
                     f"{len(report.failures)} failed")
        return report
