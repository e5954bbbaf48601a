"""
OPML adapter for pagegraft.

An OPML document becomes a single page titled from ``<head><title>``; every
``<outline>`` element becomes a block. OPML carries no identifiers, so
blocks get content-addressed ones derived from the payload, their position
and an optional per-import salt.
"""

import hashlib
import logging
from typing import Any, Dict, List

from bs4 import BeautifulSoup, Tag

from ..errors import MalformedInputError
from .base import BaseAdapter, FieldRule, coerce_text

NOTE_ATTRIBUTE = "_note"


class OPMLAdapter(BaseAdapter):
    """
    Adapter for OPML outlines.

    ``text`` becomes the block content and ``_note`` is appended to it as a
    second paragraph. Any other outline attribute is kept as a property.
    """

    name = "opml"

    def __init__(self, salt: str = ""):
        """
        Args:
            salt: Mixed into every generated identifier. The import handler
                passes a fresh value per run so an outline imported twice
                gets two distinct copies of its blocks.
        """
        super().__init__()
        self.salt = salt

    def field_rules(self) -> List[FieldRule]:
        return [
            FieldRule("text", "content", coerce_text),
        ]

    def parse(self, raw: Any) -> Dict[str, Any]:
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        soup = BeautifulSoup(raw, "xml")
        root = soup.find("opml")
        body = root.find("body") if root else None
        if body is None:
            logging.error("OPML payload has no <opml><body> element")
            raise MalformedInputError("Invalid OPML: missing <opml><body> element")

        head = root.find("head")
        title_tag = head.find("title") if head else None
        title = title_tag.get_text(strip=True) if title_tag else None

        return {
            "title": title or None,
            "digest": hashlib.sha1(raw).hexdigest(),
            "children": [self._outline(tag) for tag in body.find_all("outline", recursive=False)],
        }

    def _outline(self, tag: Tag) -> Dict[str, Any]:
        node: Dict[str, Any] = dict(tag.attrs)
        node["children"] = [self._outline(child) for child in tag.find_all("outline", recursive=False)]
        return node

    def page_list(self, tree: Any) -> List[Any]:
        if isinstance(tree, dict) and "blocks" not in tree:
            return [tree]
        return list(super().page_list(tree))

    def seed_for(self, tree: Any) -> str:
        if isinstance(tree, dict):
            return tree.get("digest", "") + self.salt
        return self.salt

    def prepare(self, named: Dict[str, Any], depth: int) -> Dict[str, Any]:
        if depth == 0:
            named.pop("digest", None)
            return named

        note = named.pop(NOTE_ATTRIBUTE, None)
        if note:
            text = named.get("text") or ""
            named["text"] = f"{text}\n{note}" if text else note

        extra = {key: named.pop(key) for key in list(named) if key not in self._sources}
        if extra:
            properties = dict(named.get("properties") or {})
            properties.update(extra)
            named["properties"] = properties
        return named
