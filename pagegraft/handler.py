"""
Import entry points for the supported export formats.

Each entry point parses the payload, pre-registers identifiers, runs the
scheduler and finally calls the caller's completion handler exactly once,
also after a fatal error so a progress display can be closed.
"""

import logging
import uuid
from typing import Any, Callable, List, Optional

from .config import config
from .database import GraphStore
from .errors import PipelineError
from .importers import BaseAdapter, LogseqEDNAdapter, LogseqJSONAdapter, OPMLAdapter
from .models import ImportBatch, ImportReport, ImportRunContext, ProgressCallback
from .notifications import Notifier
from .pipeline import (
    ImportScheduler,
    InsertionMode,
    PageMaterializer,
    ReferenceResolver,
    preregister,
    sleep_yield,
)
from .pipeline.scheduler import YieldFn

FinishedHandler = Callable[[Optional[List[Optional[str]]]], Any]


class ImportHandler:
    """
    Imports exported page trees into a graph store.
    """

    def __init__(self, store: GraphStore, notifier: Optional[Notifier] = None,
                 yield_fn: Optional[YieldFn] = None, on_progress: Optional[ProgressCallback] = None):
        """
        Initialize the import handler.

        Args:
            store: Connected and initialized graph store
            notifier: Sink for user-visible errors (defaults to logging)
            yield_fn: Called between pages (defaults to a pause of ``import.yield_delay_ms``)
            on_progress: Called with every progress update
        """
        self.store = store
        self.notifier = notifier or Notifier()
        self.yield_fn = yield_fn or sleep_yield(config.yield_delay)
        self.on_progress = on_progress

    async def import_from_tree(self, data: Any, adapter: BaseAdapter,
                               mode: InsertionMode = InsertionMode.PAGE_CHILDREN,
                               context: Optional[ImportRunContext] = None) -> ImportReport:
        """
        Import an already parsed export tree.

        Does not rely on the file system, so it works for any host.

        Returns:
            The import report; ``fatal_error`` is set if nothing was imported
        """
        try:
            batch = ImportBatch.from_nodes(adapter.translate(data))
            preregister(self.store, batch)
        except PipelineError as e:
            return self._fatal(e)

        scheduler = ImportScheduler(
            PageMaterializer(self.store, self.notifier, mode),
            ReferenceResolver(self.store, self.notifier),
            self.yield_fn,
            self.on_progress,
        )
        return await scheduler.run(batch, context)

    async def import_from_edn(self, raw: str, finished_handler: Optional[FinishedHandler] = None,
                              context: Optional[ImportRunContext] = None) -> ImportReport:
        """Import a Logseq EDN export. The completion handler receives None."""
        report = await self._import(raw, LogseqEDNAdapter(), InsertionMode.PAGE_CHILDREN, context)
        self._finish(finished_handler, None)
        return report

    async def import_from_json(self, raw: str, finished_handler: Optional[FinishedHandler] = None,
                               context: Optional[ImportRunContext] = None) -> ImportReport:
        """Import a Logseq JSON export. The completion handler receives None."""
        report = await self._import(raw, LogseqJSONAdapter(), InsertionMode.PAGE_CHILDREN, context)
        self._finish(finished_handler, None)
        return report

    async def import_from_opml(self, raw: str, finished_handler: Optional[FinishedHandler] = None,
                               context: Optional[ImportRunContext] = None) -> ImportReport:
        """
        Import an OPML outline into the page named by its title, appending
        after the page's existing content. Every call writes fresh blocks, so
        importing the same outline twice appends it twice. The completion
        handler receives the list of page titles.
        """
        report = await self._import(raw, OPMLAdapter(salt=uuid.uuid4().hex),
                                    InsertionMode.AFTER_LAST_BLOCK, context)
        self._finish(finished_handler, [outcome.title for outcome in report.outcomes])
        return report

    async def _import(self, raw: str, adapter: BaseAdapter, mode: InsertionMode,
                      context: Optional[ImportRunContext]) -> ImportReport:
        try:
            data = adapter.parse(raw)
        except PipelineError as e:
            return self._fatal(e)
        return await self.import_from_tree(data, adapter, mode, context)

    def _fatal(self, error: PipelineError) -> ImportReport:
        logging.error(f"Import aborted: {error}")
        self.notifier.show(f"Error happens when importing:\n{error}", "error")
        return ImportReport(fatal_error=error)

    @staticmethod
    def _finish(finished_handler: Optional[FinishedHandler], payload: Optional[List[Optional[str]]]):
        if finished_handler:
            finished_handler(payload)
