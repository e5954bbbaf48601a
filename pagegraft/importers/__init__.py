"""Format adapters for the supported export formats."""

from .base import BaseAdapter, FieldRule
from .logseq_edn import LogseqEDNAdapter
from .logseq_json import LogseqJSONAdapter
from .opml import OPMLAdapter

ADAPTERS = {
    "edn": LogseqEDNAdapter,
    "json": LogseqJSONAdapter,
    "opml": OPMLAdapter,
}


def get_adapter(format_name: str) -> BaseAdapter:
    """
    Instantiate the adapter registered for a format name.

    Raises:
        ValueError: If the format is not supported
    """
    try:
        return ADAPTERS[format_name.lower()]()
    except KeyError:
        raise ValueError(f"Unsupported import format: {format_name}") from None


__all__ = [
    "ADAPTERS",
    "BaseAdapter",
    "FieldRule",
    "LogseqEDNAdapter",
    "LogseqJSONAdapter",
    "OPMLAdapter",
    "get_adapter",
]
