"""
Canonical data models for pagegraft.

This module defines the standardized tree that every format adapter must
convert its source data into before any store logic runs.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field


class NodeKind(str, Enum):
    """Tag distinguishing pages, outliner blocks and whiteboard shapes."""

    PAGE = "page"
    WHITEBOARD = "whiteboard"
    BLOCK = "block"
    SHAPE = "shape"

    @property
    def is_page(self) -> bool:
        return self in (NodeKind.PAGE, NodeKind.WHITEBOARD)


class ContentFormat(str, Enum):
    """Content syntax of a page or block."""

    MARKDOWN = "markdown"
    ORG = "org"


class CanonicalNode(BaseModel):
    """
    The universal data structure for one import unit at any tree depth.

    All data from the supported export formats (Logseq EDN, Logseq JSON, OPML)
    is converted into this standardized format before it is written to the
    graph store.
    """

    identifier: str = Field(
        ...,
        description="A unique identifier, stable across the whole import"
    )

    kind: NodeKind = Field(
        default=NodeKind.BLOCK,
        description="Whether this node is a page, a whiteboard, a block or a shape"
    )

    title: Optional[str] = Field(
        default=None,
        description="The page title (only meaningful at page level)"
    )

    content: str = Field(
        default="",
        description="The text content of a block"
    )

    properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata attached to the node"
    )

    format: Optional[ContentFormat] = Field(
        default=None,
        description="The content syntax of the node"
    )

    children: List['CanonicalNode'] = Field(
        default_factory=list,
        description="Ordered child nodes; order encodes document order"
    )

    def walk(self) -> Iterator['CanonicalNode']:
        """Yield this node and all of its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


class ImportJob(BaseModel):
    """A batch position paired with the page node it refers to."""

    index: int
    page: CanonicalNode


class ImportBatch(BaseModel):
    """
    Ordered sequence of page-level nodes, sorted by title for deterministic
    processing order. Pages without a title sort first.
    """

    pages: List[CanonicalNode] = Field(default_factory=list)

    @classmethod
    def from_nodes(cls, nodes: List[CanonicalNode]) -> 'ImportBatch':
        ordered = sorted(nodes, key=lambda node: (node.title is not None, node.title or ""))
        return cls(pages=ordered)

    def __len__(self) -> int:
        return len(self.pages)

    def jobs(self) -> List[ImportJob]:
        return [ImportJob(index=i, page=page) for i, page in enumerate(self.pages)]

    def iter_nodes(self) -> Iterator[CanonicalNode]:
        for page in self.pages:
            yield from page.walk()


# Enable forward references for self-referencing model
CanonicalNode.model_rebuild()
