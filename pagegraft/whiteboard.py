"""
Whiteboard shape helpers.

A whiteboard page holds flat shape records instead of an outliner tree. The
shape itself lives in the ``logseq.tldraw.shape`` property of its block.
"""

import uuid
from typing import Any, Dict, List, Optional

from .database import extract_block_refs
from .models import CanonicalNode

SHAPE_PROPERTY = "logseq.tldraw.shape"
TYPE_PROPERTY = "ls-type"
WHITEBOARD_SHAPE = "whiteboard-shape"
PORTAL_SHAPE = "logseq-portal"

# Legacy shape schemas stored these as maps instead of [x, y] pairs.
LEGACY_PAIRS = {
    "point": ("x", "y"),
    "size": ("width", "height"),
}


def to_shape_record(node: CanonicalNode) -> Dict[str, Any]:
    """Re-key a canonical shape node into the namespaced shape schema."""
    return {
        "block/uuid": node.identifier,
        "block/content": node.content,
        "block/properties": dict(node.properties),
        "block/format": node.format,
    }


def shape_block(record: Dict[str, Any]) -> bool:
    properties = record.get("block/properties") or {}
    return properties.get(TYPE_PROPERTY) == WHITEBOARD_SHAPE


def block_to_shape(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    properties = record.get("block/properties") or {}
    shape = properties.get(SHAPE_PROPERTY)
    return shape if isinstance(shape, dict) else None


def fractional_index(position: int) -> str:
    return f"a{position:05d}"


def migrate_shape_block(record: Dict[str, Any], position: int) -> Dict[str, Any]:
    """
    Bring a shape written by an older whiteboard schema up to date.

    Missing ``index`` values are assigned from the record's position, the
    shape ``id`` is aligned with the block identifier and legacy map-valued
    ``point``/``size`` become pairs. Non-shape records are returned unchanged.
    """
    shape = block_to_shape(record)
    if not shape_block(record) or shape is None:
        return record

    shape = dict(shape)
    if not shape.get("index"):
        shape["index"] = fractional_index(position)
    if shape.get("id") != record["block/uuid"]:
        shape["id"] = record["block/uuid"]
    for key, (first, second) in LEGACY_PAIRS.items():
        value = shape.get(key)
        if isinstance(value, dict):
            shape[key] = [value.get(first, 0), value.get(second, 0)]

    properties = dict(record["block/properties"])
    properties[SHAPE_PROPERTY] = shape
    migrated = dict(record)
    migrated["block/properties"] = properties
    return migrated


def _uuid_or_none(value: Any) -> Optional[str]:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        return None


def get_shape_refs(shape: Dict[str, Any]) -> List[str]:
    """Identifiers a portal shape points at."""
    if shape.get("type") != PORTAL_SHAPE:
        return []
    ref = _uuid_or_none(shape.get("pageId"))
    return [ref] if ref else []


def with_whiteboard_block_props(record: Dict[str, Any], page_uuid: str) -> Dict[str, Any]:
    """
    Container attributes linking a shape record back to its whiteboard page.
    """
    refs = extract_block_refs(record.get("block/content"))
    shape = block_to_shape(record)
    if shape_block(record) and shape is not None:
        refs += [ref for ref in get_shape_refs(shape) if ref not in refs]
    return {
        "block/page": page_uuid,
        "block/parent": page_uuid,
        "block/refs": refs,
    }
