"""DuckDB-backed page/block graph store."""

from .manager import GraphStore, extract_block_refs, is_stub, sanitize_page_name

__all__ = ["GraphStore", "extract_block_refs", "is_stub", "sanitize_page_name"]
