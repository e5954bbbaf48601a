"""
Graph store for pagegraft.

This module persists pages, blocks, whiteboard shapes and cross-references in
DuckDB. A row that carries only its ``uuid`` is a pre-registered stub.
"""

import json
import logging
import re
import uuid as uuid_lib
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

import duckdb

from ..errors import StoreError
from ..models import CanonicalNode, ContentFormat, NodeKind

BLOCK_COLUMNS = [
    "uuid", "kind", "page_uuid", "parent_uuid", "position", "page_name",
    "title", "content", "format", "properties", "created_at", "updated_at",
]

BLOCK_REF_PATTERN = re.compile(
    r"\(\(([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})\)\)"
)


def sanitize_page_name(title: Optional[str]) -> str:
    """Derive the lookup name of a page from its title."""
    return (title or "").strip().lower()


def extract_block_refs(content: Optional[str]) -> List[str]:
    """Return the identifiers referenced as ``((uuid))`` in block content, in order."""
    refs: List[str] = []
    for match in BLOCK_REF_PATTERN.finditer(content or ""):
        ref = match.group(1).lower()
        if ref not in refs:
            refs.append(ref)
    return refs


def is_stub(row: Optional[Dict[str, Any]]) -> bool:
    return row is not None and row["kind"] is None


class GraphStore:
    """
    Manages the DuckDB database holding the page/block graph.
    """

    def __init__(self, db_path: str = "pagegraft.db"):
        """
        Initialize the graph store.

        Args:
            db_path: Path to the DuckDB database file (``:memory:`` for a transient store)
        """
        self.db_path = db_path
        self.connection = None
        self._in_transaction = False

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def _require_connection(self):
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return self.connection

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        connection = self._require_connection()

        connection.execute("""
            CREATE TABLE IF NOT EXISTS blocks (
                uuid VARCHAR PRIMARY KEY,
                kind VARCHAR,
                page_uuid VARCHAR,
                parent_uuid VARCHAR,
                position INTEGER,
                page_name VARCHAR,
                title VARCHAR,
                content VARCHAR,
                format VARCHAR,
                properties VARCHAR,
                created_at TIMESTAMP,
                updated_at TIMESTAMP
            )
        """)

        connection.execute("""
            CREATE TABLE IF NOT EXISTS block_refs (
                block_uuid VARCHAR NOT NULL,
                ref_uuid VARCHAR NOT NULL,
                PRIMARY KEY (block_uuid, ref_uuid)
            )
        """)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run the enclosed writes in one transaction; roll back on any error.

        Nested use joins the outer transaction.
        """
        connection = self._require_connection()
        if self._in_transaction:
            yield
            return

        connection.begin()
        self._in_transaction = True
        try:
            yield
        except Exception:
            connection.rollback()
            raise
        else:
            connection.commit()
        finally:
            self._in_transaction = False

    def transact_stubs(self, identifiers: Iterable[str]) -> int:
        """
        Insert a stub row for every identifier that is not yet in the store.

        Args:
            identifiers: Identifiers to pre-register

        Returns:
            Number of stubs created
        """
        connection = self._require_connection()
        rows = [[identifier] for identifier in identifiers]
        if not rows:
            return 0

        try:
            with self.transaction():
                before = connection.execute("SELECT count(*) FROM blocks").fetchone()[0]
                connection.executemany("INSERT OR IGNORE INTO blocks (uuid) VALUES (?)", rows)
                after = connection.execute("SELECT count(*) FROM blocks").fetchone()[0]
        except duckdb.Error as e:
            raise StoreError(f"Failed to write identifier stubs: {e}") from e
        return after - before

    def get_block(self, block_uuid: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a block, page, shape or stub by identifier.

        Returns:
            The row as a dictionary with decoded properties, or None
        """
        connection = self._require_connection()
        result = connection.execute(
            f"SELECT {', '.join(BLOCK_COLUMNS)} FROM blocks WHERE uuid = ?",
            [block_uuid]
        ).fetchone()
        return self._row_to_dict(result) if result else None

    def get_page(self, page_name: str) -> Optional[Dict[str, Any]]:
        """Retrieve a page (or whiteboard) by its sanitized name."""
        connection = self._require_connection()
        result = connection.execute(
            f"SELECT {', '.join(BLOCK_COLUMNS)} FROM blocks "
            "WHERE page_name = ? AND kind IN ('page', 'whiteboard')",
            [page_name]
        ).fetchone()
        return self._row_to_dict(result) if result else None

    def page_exists(self, page_name: str) -> bool:
        return self.get_page(page_name) is not None

    def list_pages(self) -> List[Dict[str, Any]]:
        """List all pages and whiteboards ordered by name."""
        connection = self._require_connection()
        results = connection.execute(
            f"SELECT {', '.join(BLOCK_COLUMNS)} FROM blocks "
            "WHERE kind IN ('page', 'whiteboard') ORDER BY page_name"
        ).fetchall()
        return [self._row_to_dict(row) for row in results]

    def get_children(self, parent_uuid: str) -> List[Dict[str, Any]]:
        """List the direct children of a page or block in document order."""
        connection = self._require_connection()
        results = connection.execute(
            f"SELECT {', '.join(BLOCK_COLUMNS)} FROM blocks "
            "WHERE parent_uuid = ? ORDER BY position",
            [parent_uuid]
        ).fetchall()
        return [self._row_to_dict(row) for row in results]

    def create_page(self, title: Optional[str], page_uuid: str,
                    page_format: ContentFormat = ContentFormat.MARKDOWN,
                    properties: Optional[Dict[str, Any]] = None,
                    whiteboard: bool = False) -> Dict[str, Any]:
        """
        Create a page carrying the given identifier.

        A pre-registered stub for the identifier is filled in place.

        Raises:
            StoreError: If the title is empty, the page already exists, the
                identifier belongs to another block or the properties are not
                serializable
        """
        connection = self._require_connection()
        page_name = sanitize_page_name(title)
        if not page_name:
            raise StoreError("Page title must not be empty")
        if self.page_exists(page_name):
            raise StoreError(f"Page already exists: {title}")

        properties_json = self._dump_properties(properties)
        kind = NodeKind.WHITEBOARD if whiteboard else NodeKind.PAGE
        now = datetime.now()
        try:
            with self.transaction():
                existing = self._claim_identifier(page_uuid)
                if existing:
                    connection.execute("""
                        UPDATE blocks SET kind = ?, page_name = ?, title = ?, format = ?,
                            properties = ?, created_at = ?, updated_at = ?
                        WHERE uuid = ?
                    """, [kind.value, page_name, title.strip(), page_format.value,
                          properties_json, now, now, page_uuid])
                else:
                    connection.execute("""
                        INSERT INTO blocks (uuid, kind, page_name, title, format, properties,
                                            created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """, [page_uuid, kind.value, page_name, title.strip(), page_format.value,
                          properties_json, now, now])
        except duckdb.Error as e:
            raise StoreError(f"Failed to create page {title!r}: {e}") from e

        logging.debug(f"Created page {title!r} ({page_uuid})")
        return self.get_page(page_name)

    def insert_block_tree(self, nodes: List[CanonicalNode], page_uuid: str, target_uuid: str,
                          sibling: bool = False,
                          page_format: ContentFormat = ContentFormat.MARKDOWN,
                          keep_uuid: bool = True) -> List[str]:
        """
        Insert a list of block trees in one transaction, preserving order.

        Args:
            nodes: The top-level blocks to insert
            page_uuid: The page the blocks belong to
            target_uuid: The block (or page) to insert at
            sibling: Insert right after the target instead of as its last children
            page_format: Format used for blocks that carry none
            keep_uuid: Use the nodes' identifiers instead of allocating new ones

        Returns:
            Identifiers of all written blocks in document order
        """
        connection = self._require_connection()
        written: List[str] = []
        try:
            with self.transaction():
                if sibling:
                    target = self.get_block(target_uuid)
                    if target is None or is_stub(target):
                        raise StoreError(f"Insertion target does not exist: {target_uuid}")
                    parent_uuid = target["parent_uuid"]
                    start = target["position"] + 1
                    connection.execute(
                        "UPDATE blocks SET position = position + ? WHERE parent_uuid = ? AND position >= ?",
                        [len(nodes), parent_uuid, start]
                    )
                else:
                    parent_uuid = target_uuid
                    start = self._next_position(parent_uuid)

                for offset, node in enumerate(nodes):
                    self._write_block(node, page_uuid, parent_uuid, start + offset,
                                      page_format, keep_uuid, written)
        except duckdb.Error as e:
            raise StoreError(f"Failed to insert blocks: {e}") from e
        return written

    def transact_shapes(self, records: List[Dict[str, Any]]) -> int:
        """
        Write flat whiteboard shape records in one transaction.

        Records use the namespaced shape schema (``block/uuid``,
        ``block/properties``, ``block/page`` ...).
        """
        connection = self._require_connection()
        now = datetime.now()
        try:
            with self.transaction():
                for position, record in enumerate(records):
                    shape_uuid = record["block/uuid"]
                    values = [
                        NodeKind.SHAPE.value,
                        record.get("block/page"),
                        record.get("block/parent"),
                        record.get("block/position", position),
                        record.get("block/content", ""),
                        self._format_value(record.get("block/format")),
                        self._dump_properties(record.get("block/properties")),
                        now,
                        now,
                    ]
                    if self._claim_identifier(shape_uuid):
                        connection.execute("""
                            UPDATE blocks SET kind = ?, page_uuid = ?, parent_uuid = ?, position = ?,
                                content = ?, format = ?, properties = ?, created_at = ?, updated_at = ?
                            WHERE uuid = ?
                        """, values + [shape_uuid])
                    else:
                        connection.execute("""
                            INSERT INTO blocks (kind, page_uuid, parent_uuid, position, content, format,
                                                properties, created_at, updated_at, uuid)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """, values + [shape_uuid])
                    self._add_refs(shape_uuid, record.get("block/refs", []))
        except duckdb.Error as e:
            raise StoreError(f"Failed to write whiteboard shapes: {e}") from e
        return len(records)

    def get_all_referenced_block_ids(self) -> List[str]:
        """Return every identifier that is the target of at least one reference."""
        connection = self._require_connection()
        results = connection.execute(
            "SELECT DISTINCT ref_uuid FROM block_refs ORDER BY ref_uuid"
        ).fetchall()
        return [row[0] for row in results]

    def get_refs(self, block_uuid: str) -> List[str]:
        connection = self._require_connection()
        results = connection.execute(
            "SELECT ref_uuid FROM block_refs WHERE block_uuid = ? ORDER BY ref_uuid",
            [block_uuid]
        ).fetchall()
        return [row[0] for row in results]

    def set_blocks_id(self, identifiers: Iterable[str]) -> int:
        """
        Persist the ``id`` property of each referenced block so lookups by
        identifier resolve. Stubs and unknown identifiers are skipped.

        Returns:
            Number of blocks whose stored identifier changed
        """
        connection = self._require_connection()
        updated = 0
        try:
            with self.transaction():
                for identifier in identifiers:
                    block = self.get_block(identifier)
                    if block is None or is_stub(block):
                        logging.debug(f"Reference target not materialized: {identifier}")
                        continue
                    properties = block["properties"]
                    if properties.get("id") == identifier:
                        continue
                    properties["id"] = identifier
                    connection.execute(
                        "UPDATE blocks SET properties = ?, updated_at = ? WHERE uuid = ?",
                        [self._dump_properties(properties), datetime.now(), identifier]
                    )
                    updated += 1
        except duckdb.Error as e:
            raise StoreError(f"Failed to set block identifiers: {e}") from e
        return updated

    def _write_block(self, node: CanonicalNode, page_uuid: str, parent_uuid: str, position: int,
                     page_format: ContentFormat, keep_uuid: bool, written: List[str]):
        connection = self._require_connection()
        block_uuid = node.identifier if keep_uuid else str(uuid_lib.uuid4())
        block_format = node.format or page_format
        now = datetime.now()
        values = [
            NodeKind.BLOCK.value, page_uuid, parent_uuid, position, node.content,
            block_format.value, self._dump_properties(node.properties), now, now,
        ]
        if self._claim_identifier(block_uuid):
            connection.execute("""
                UPDATE blocks SET kind = ?, page_uuid = ?, parent_uuid = ?, position = ?, content = ?,
                    format = ?, properties = ?, created_at = ?, updated_at = ?
                WHERE uuid = ?
            """, values + [block_uuid])
        else:
            connection.execute("""
                INSERT INTO blocks (kind, page_uuid, parent_uuid, position, content, format,
                                    properties, created_at, updated_at, uuid)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, values + [block_uuid])
        self._add_refs(block_uuid, extract_block_refs(node.content))
        written.append(block_uuid)

        for child_position, child in enumerate(node.children):
            self._write_block(child, page_uuid, block_uuid, child_position,
                              block_format, keep_uuid, written)

    def _claim_identifier(self, identifier: str) -> bool:
        """
        Check that an identifier is free to be written.

        Returns:
            True if a stub exists and must be updated, False if a new row is needed

        Raises:
            StoreError: If the identifier already holds materialized content
        """
        existing = self.get_block(identifier)
        if existing is None:
            return False
        if not is_stub(existing):
            raise StoreError(f"Identifier {identifier} is already used by another {existing['kind']}")
        return True

    def _add_refs(self, block_uuid: str, refs: Iterable[str]):
        connection = self._require_connection()
        for ref in refs:
            connection.execute(
                "INSERT OR IGNORE INTO block_refs (block_uuid, ref_uuid) VALUES (?, ?)",
                [block_uuid, ref]
            )

    def _next_position(self, parent_uuid: str) -> int:
        connection = self._require_connection()
        result = connection.execute(
            "SELECT max(position) FROM blocks WHERE parent_uuid = ?",
            [parent_uuid]
        ).fetchone()
        return 0 if result is None or result[0] is None else result[0] + 1

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, ContentFormat):
            return value.value
        return str(value) if value else ContentFormat.MARKDOWN.value

    @staticmethod
    def _dump_properties(properties: Optional[Dict[str, Any]]) -> str:
        try:
            return json.dumps(properties or {}, sort_keys=True, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Invalid properties: {e}") from e

    @staticmethod
    def _row_to_dict(row) -> Dict[str, Any]:
        record = dict(zip(BLOCK_COLUMNS, row))
        record["properties"] = json.loads(record["properties"]) if record["properties"] else {}
        return record
