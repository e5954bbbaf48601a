"""
Logseq JSON adapter for pagegraft.

Translates Logseq's JSON tree export (same shape as the EDN export, bare keys)
into CanonicalNode trees.
"""

import json
import logging
from typing import Any, List

from ..errors import MalformedInputError
from .base import BaseAdapter, FieldRule, coerce_identifier, coerce_page_type, coerce_text


class LogseqJSONAdapter(BaseAdapter):
    """Adapter for Logseq JSON tree exports: ``id`` -> identifier, ``page-name`` -> title."""

    name = "json"

    def field_rules(self) -> List[FieldRule]:
        return [
            FieldRule("uuid", "identifier", coerce_identifier),
            FieldRule("id", "identifier", coerce_identifier),
            FieldRule("original-name", "title", coerce_text),
            FieldRule("page-name", "title", coerce_text),
            FieldRule("type", "kind", coerce_page_type),
        ]

    def parse(self, raw: Any) -> Any:
        try:
            return json.loads(raw)
        except (ValueError, TypeError) as e:
            logging.error(f"Failed to parse JSON export: {e}")
            raise MalformedInputError(f"Invalid JSON: {e}") from e
