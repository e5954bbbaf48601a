"""
Page materialization: one canonical page tree into the graph store.

Failures are isolated here. Whatever goes wrong while creating a page or
writing its content is logged, reported through the notifier and returned
as part of the PageOutcome; it never reaches the scheduler.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..database import GraphStore, sanitize_page_name
from ..errors import PageMaterializationError
from ..models import CanonicalNode, ContentFormat, NodeKind, PageOutcome
from ..notifications import Notifier
from ..whiteboard import migrate_shape_block, to_shape_record, with_whiteboard_block_props


class InsertionMode(str, Enum):
    """Where a page's content goes."""

    PAGE_CHILDREN = "page-children"
    AFTER_LAST_BLOCK = "after-last-block"


def page_format_of(page: CanonicalNode) -> ContentFormat:
    """The page's own format, else its first child's, else markdown."""
    if page.format:
        return page.format
    if page.children and page.children[0].format:
        return page.children[0].format
    return ContentFormat.MARKDOWN


def serialize_node(node: CanonicalNode) -> Optional[Dict[str, Any]]:
    """
    JSON-safe dump of a node for error reports.

    Values JSON cannot represent are written as their string form. Returns
    None if the node cannot be dumped at all, so reporting a failure never
    fails itself.
    """
    try:
        return json.loads(json.dumps(node.model_dump(), default=str, ensure_ascii=False))
    except Exception as e:
        logging.warning(f"Cannot serialize node {node.identifier}: {e}")
        return None


def select_insertion_target(store: GraphStore, page: Dict[str, Any]) -> Tuple[str, bool]:
    """
    Pick where appended content goes on an existing page.

    After the last block when it has content, else after the second-to-last
    block, else as children of the page itself.

    Returns:
        Tuple of (target identifier, insert as sibling)
    """
    blocks = store.get_children(page["uuid"])
    last_block = blocks[-1] if blocks else None
    second_last_block = blocks[-2] if len(blocks) > 1 else None
    if last_block and last_block["content"]:
        return last_block["uuid"], True
    if second_last_block:
        return second_last_block["uuid"], True
    return page["uuid"], False


class PageMaterializer:
    """
    Creates (or locates) a page and inserts its outliner content or
    whiteboard shapes.
    """

    def __init__(self, store: GraphStore, notifier: Notifier,
                 mode: InsertionMode = InsertionMode.PAGE_CHILDREN, keep_uuid: bool = True):
        """
        Initialize the materializer.

        Args:
            store: The graph store to write to
            notifier: Sink for per-page error notifications
            mode: Where content is inserted on the page
            keep_uuid: Keep pre-registered identifiers instead of allocating new ones
        """
        self.store = store
        self.notifier = notifier
        self.mode = mode
        self.keep_uuid = keep_uuid

    def materialize(self, page: CanonicalNode, index: Optional[int] = None) -> PageOutcome:
        """
        Materialize one page tree.

        Returns:
            The outcome, carrying the page title whether or not it succeeded
        """
        title = page.title.strip() if page.title else page.title
        page_format = page_format_of(page)
        whiteboard = page.kind is NodeKind.WHITEBOARD

        try:
            page_row = self.store.get_page(sanitize_page_name(page.title))
            if page_row is None:
                page_row = self.store.create_page(page.title, page.identifier, page_format,
                                                  page.properties, whiteboard)
        except Exception as e:
            error = self._report(page, title, "page", e)
            return PageOutcome(index=index, title=title, error=error)

        if page.children:
            try:
                if whiteboard:
                    self._insert_shapes(page, page_row)
                else:
                    self._insert_blocks(page, page_row, page_format)
            except Exception as e:
                error = self._report(page, title, "content", e)
                return PageOutcome(index=index, title=title, error=error)

        logging.info(f"Imported page {title!r} ({len(page.children)} top-level children)")
        return PageOutcome(index=index, title=title)

    def _insert_blocks(self, page: CanonicalNode, page_row: Dict[str, Any], page_format: ContentFormat):
        if self.mode is InsertionMode.AFTER_LAST_BLOCK:
            target_uuid, sibling = select_insertion_target(self.store, page_row)
        else:
            target_uuid, sibling = page_row["uuid"], False
        self.store.insert_block_tree(page.children, page_row["uuid"], target_uuid,
                                     sibling=sibling, page_format=page_format,
                                     keep_uuid=self.keep_uuid)

    def _insert_shapes(self, page: CanonicalNode, page_row: Dict[str, Any]):
        records = []
        for position, child in enumerate(page.children):
            record = migrate_shape_block(to_shape_record(child), position)
            record.update(with_whiteboard_block_props(record, page_row["uuid"]))
            records.append(record)
        self.store.transact_shapes(records)

    def _report(self, page: CanonicalNode, title: Optional[str], stage: str,
                cause: Exception) -> PageMaterializationError:
        node = serialize_node(page)
        error = PageMaterializationError(title, stage, cause, node=node)
        logging.error(str(error), exc_info=True)
        logging.error(f"Offending node: {json.dumps(node, ensure_ascii=False)}")

        what = "page" if stage == "page" else "block content of page"
        self.notifier.show(
            f"Error happens when creating {what} {title}:\n{cause}\n"
            "Skipped and continue the remaining import.",
            "error"
        )
        return error
