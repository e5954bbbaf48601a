"""
Logseq EDN adapter for pagegraft.

This module translates Logseq's EDN tree export (``{:version 1 :blocks [...]}``
with ``:block/``-namespaced keys) into CanonicalNode trees.
"""

import collections.abc
import datetime
import logging
import uuid
from typing import Any, List

import edn_format

from ..errors import MalformedInputError
from .base import (
    CHILDREN,
    BaseAdapter,
    FieldRule,
    coerce_format,
    coerce_identifier,
    coerce_page_type,
    coerce_text,
)


class LogseqEDNAdapter(BaseAdapter):
    """
    Adapter for Logseq EDN tree exports.

    Strips the ``block/`` namespace, maps ``:block/page-name`` onto the title
    and ``:block/id`` onto the identifier. EDN values found in properties are
    converted to plain JSON values.
    """

    name = "edn"

    def field_rules(self) -> List[FieldRule]:
        return [
            FieldRule("block/uuid", "identifier", coerce_identifier),
            FieldRule("block/id", "identifier", coerce_identifier),
            FieldRule("block/title", "title", coerce_text),
            FieldRule("block/original-name", "title", coerce_text),
            FieldRule("block/page-name", "title", coerce_text),
            FieldRule("block/content", "content", coerce_text),
            FieldRule("block/properties", "properties", self.coerce_properties),
            FieldRule("block/format", "format", coerce_format),
            FieldRule("block/type", "kind", coerce_page_type),
            FieldRule("block/children", CHILDREN),
        ]

    def parse(self, raw: Any) -> Any:
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            parsed = edn_format.loads(raw)
        except Exception as e:
            logging.error(f"Failed to parse EDN export: {e}")
            raise MalformedInputError(f"Invalid EDN: {e}") from e
        if parsed is None:
            raise MalformedInputError("Invalid EDN: empty document")
        return parsed

    def key_name(self, key: Any) -> str:
        if isinstance(key, edn_format.Keyword):
            return key.name
        return str(key)

    def plain_value(self, value: Any) -> Any:
        if isinstance(value, (edn_format.Keyword, edn_format.Symbol)):
            return value.name
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, (datetime.datetime, datetime.date)):
            return value.isoformat()
        if isinstance(value, collections.abc.Mapping):
            return {self.key_name(k): self.plain_value(v) for k, v in value.items()}
        if isinstance(value, str):
            return str(value)
        if isinstance(value, (collections.abc.Sequence, collections.abc.Set)):
            return [self.plain_value(v) for v in value]
        if value is None or isinstance(value, (bool, int, float)):
            return value
        # Chars, decimals and other reader types have no JSON counterpart
        return str(value)
