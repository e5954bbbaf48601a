"""
Base adapter interface for pagegraft.

Every export format is described by a schema-mapping table of FieldRule
entries (source field -> canonical field, coercion). One generic tree walk in
BaseAdapter applies the table, so adding a format means writing a new table
rather than new traversal code.
"""

import collections.abc
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..errors import MalformedInputError
from ..models import CanonicalNode, ContentFormat, NodeKind

CHILDREN = "children"

FORMAT_ALIASES = {
    "markdown": ContentFormat.MARKDOWN,
    "md": ContentFormat.MARKDOWN,
    "org": ContentFormat.ORG,
    "org-mode": ContentFormat.ORG,
}

PAGE_TYPES = {
    "page": NodeKind.PAGE,
    "journal": NodeKind.PAGE,
    "whiteboard": NodeKind.WHITEBOARD,
}


class FieldRule(NamedTuple):
    """Maps one source field onto a canonical field."""

    source: str
    target: str
    coerce: Optional[Callable[[Any], Any]] = None


def is_sequence(value: Any) -> bool:
    return isinstance(value, collections.abc.Sequence) and not isinstance(value, (str, bytes))


def coerce_identifier(value: Any) -> Optional[str]:
    """Normalize an identifier; UUID-shaped values become lowercase canonical UUIDs."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return str(uuid.UUID(text))
    except ValueError:
        return text


def coerce_format(value: Any) -> Optional[ContentFormat]:
    """Coerce a loose format tag (``"markdown"``, ``:markdown``, ``"md"``) into ContentFormat."""
    if value is None or isinstance(value, ContentFormat):
        return value
    text = str(value).strip().lstrip(":").lower()
    if not text:
        return None
    if text not in FORMAT_ALIASES:
        logging.warning(f"Unknown content format {value!r}, falling back to markdown")
        return ContentFormat.MARKDOWN
    return FORMAT_ALIASES[text]


def coerce_kind(value: Any) -> Optional[NodeKind]:
    if value is None or isinstance(value, NodeKind):
        return value
    try:
        return NodeKind(str(value).lstrip(":").lower())
    except ValueError:
        return None


def coerce_page_type(value: Any) -> Optional[NodeKind]:
    if value is None:
        return None
    return PAGE_TYPES.get(str(value).lstrip(":").lower())


def coerce_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class BaseAdapter(ABC):
    """
    Abstract base class for all format adapters.

    Each adapter converts one export format (Logseq EDN, Logseq JSON, OPML)
    into the standardized CanonicalNode tree. Adapters are pure: ``translate``
    touches no store and performs no I/O.
    """

    name = "base"

    def __init__(self):
        self._rules: List[FieldRule] = self.canonical_rules() + self.field_rules()
        self._sources = {rule.source for rule in self._rules}

    @abstractmethod
    def parse(self, raw: Any) -> Any:
        """
        Parse a raw payload into a tree of mappings.

        Raises:
            MalformedInputError: If the payload is not valid for this format
        """

    @abstractmethod
    def field_rules(self) -> List[FieldRule]:
        """Return the format-specific schema-mapping table."""

    def canonical_rules(self) -> List[FieldRule]:
        """
        Identity rules for the canonical field names.

        These make canonical names fixed points of every table, so translating
        an already-canonical tree changes nothing.
        """
        return [
            FieldRule("identifier", "identifier", coerce_identifier),
            FieldRule("kind", "kind", coerce_kind),
            FieldRule("title", "title", coerce_text),
            FieldRule("content", "content", coerce_text),
            FieldRule("properties", "properties", self.coerce_properties),
            FieldRule("format", "format", coerce_format),
            FieldRule(CHILDREN, CHILDREN),
        ]

    def load(self, raw: Any) -> List[CanonicalNode]:
        """Parse and translate a raw payload."""
        return self.translate(self.parse(raw))

    def translate(self, tree: Any) -> List[CanonicalNode]:
        """
        Translate a parsed tree into canonical page nodes.

        Args:
            tree: The parsed export (a mapping holding ``blocks`` or a list of pages)

        Returns:
            List of page-level CanonicalNode objects in source order
        """
        seed = self.seed_for(tree)
        pages = self.page_list(tree)
        return [self._translate_node(page, (i,), None, seed) for i, page in enumerate(pages)]

    def page_list(self, tree: Any) -> Sequence[Any]:
        if isinstance(tree, collections.abc.Mapping):
            blocks = self._named(tree).get("blocks")
            if not is_sequence(blocks):
                raise MalformedInputError(f"{self.name} export does not contain a valid 'blocks' list")
            return blocks
        if is_sequence(tree):
            return tree
        raise MalformedInputError(f"{self.name} export must be a map or a list, got {type(tree).__name__}")

    def seed_for(self, tree: Any) -> str:
        return ""

    def key_name(self, key: Any) -> str:
        return str(key)

    def plain_value(self, value: Any) -> Any:
        """Convert a format-specific scalar or container into a plain JSON value."""
        return value

    def coerce_properties(self, value: Any) -> Optional[Dict[str, Any]]:
        if value is None:
            return None
        if not isinstance(value, collections.abc.Mapping):
            raise MalformedInputError(f"Properties must be a map, got {type(value).__name__}")
        return {self.key_name(k): self.plain_value(v) for k, v in value.items()}

    def prepare(self, named: Dict[str, Any], depth: int) -> Dict[str, Any]:
        """Hook to reshape a node's fields before the mapping table is applied."""
        return named

    def default_identifier(self, fields: Mapping[str, Any], path: Tuple[int, ...], seed: str) -> str:
        """Content-addressed identifier for nodes whose source carries none."""
        location = ".".join(str(i) for i in path)
        key = f"{self.name}:{seed}:{location}:{fields.get('title') or ''}:{fields.get('content') or ''}"
        return str(uuid.uuid5(uuid.NAMESPACE_URL, key))

    def _named(self, raw: Mapping) -> Dict[str, Any]:
        return {self.key_name(key): value for key, value in raw.items()}

    def _translate_node(self, raw: Any, path: Tuple[int, ...], parent_kind: Optional[NodeKind],
                        seed: str) -> CanonicalNode:
        if not isinstance(raw, collections.abc.Mapping):
            raise MalformedInputError(f"Expected a map at position {list(path)}, got {type(raw).__name__}")

        named = self.prepare(self._named(raw), len(path) - 1)
        fields: Dict[str, Any] = {}
        raw_children: Any = None
        for rule in self._rules:
            if rule.source not in named:
                continue
            value = named[rule.source]
            if rule.target == CHILDREN:
                if raw_children is None:
                    raw_children = value
                continue
            if rule.coerce:
                value = rule.coerce(value)
            if value is not None and rule.target not in fields:
                fields[rule.target] = value

        ignored = set(named) - self._sources
        if ignored:
            logging.debug(f"Ignoring fields {sorted(ignored)} at position {list(path)}")

        kind = fields.get("kind")
        if kind is None:
            if parent_kind is None:
                kind = NodeKind.PAGE
            elif parent_kind is NodeKind.WHITEBOARD:
                kind = NodeKind.SHAPE
            else:
                kind = NodeKind.BLOCK
        fields["kind"] = kind

        if raw_children is None:
            raw_children = []
        if not is_sequence(raw_children):
            raise MalformedInputError(f"Children at position {list(path)} must be a list")

        fields.setdefault("identifier", self.default_identifier(fields, path, seed))
        children = [
            self._translate_node(child, path + (i,), kind, seed)
            for i, child in enumerate(raw_children)
        ]

        try:
            return CanonicalNode(children=children, **fields)
        except ValidationError as e:
            raise MalformedInputError(f"Invalid node at position {list(path)}: {e}") from e
