"""
Unit tests for core pagegraft components.

Tests the non-pipeline components: configuration management, data models,
the graph store and the whiteboard shape helpers.
"""

import os
import tempfile
import unittest
from pathlib import Path

from pagegraft.config import ConfigManager
from pagegraft.database import GraphStore, extract_block_refs, sanitize_page_name
from pagegraft.errors import StoreError
from pagegraft.models import CanonicalNode, ContentFormat, ImportBatch, NodeKind
from pagegraft.whiteboard import migrate_shape_block, to_shape_record, with_whiteboard_block_props

TARGET_UUID = "5f0b2a3c-9d4e-4f1a-8b7c-6d5e4f3a2b1c"


def block(identifier, content, children=None):
    return CanonicalNode(identifier=identifier, content=content, children=children or [])


class TestConfigManager(unittest.TestCase):
    """Test configuration management functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "test_config.yaml"

    def tearDown(self):
        """Clean up test fixtures."""
        if self.config_path.exists():
            self.config_path.unlink()
        os.rmdir(self.temp_dir)

    def test_config_creation_with_defaults(self):
        """Test config manager falls back to defaults when file missing."""
        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.database_filename, "pagegraft.db")
        self.assertEqual(config.yield_delay, 0.01)
        self.assertEqual(config.supported_formats, ["edn", "json", "opml"])

    def test_config_loading_from_file(self):
        """Test loading configuration from YAML file."""
        with open(self.config_path, 'w') as f:
            f.write("""
database:
  filename: "graph.db"
import:
  yield_delay_ms: 0
logging:
  level: "DEBUG"
""")

        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.database_filename, "graph.db")
        self.assertEqual(config.yield_delay, 0.0)
        self.assertEqual(config.get("logging.level"), "DEBUG")
        self.assertEqual(config.get("nonexistent.key", "default"), "default")
        self.assertEqual(config.get_section("database"), {"filename": "graph.db"})

    def test_invalid_yaml_falls_back_to_defaults(self):
        with open(self.config_path, 'w') as f:
            f.write("database: [unclosed")

        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.database_filename, "pagegraft.db")

    def test_config_reload(self):
        """Test configuration reloading."""
        with open(self.config_path, 'w') as f:
            f.write("database:\n  filename: 'one.db'")

        config = ConfigManager(str(self.config_path))
        self.assertEqual(config.database_filename, "one.db")

        with open(self.config_path, 'w') as f:
            f.write("database:\n  filename: 'two.db'")

        config.reload()
        self.assertEqual(config.database_filename, "two.db")


class TestDataModels(unittest.TestCase):
    """Test data model validation and functionality."""

    def test_batch_is_sorted_by_title(self):
        pages = [
            CanonicalNode(identifier=title, kind=NodeKind.PAGE, title=title)
            for title in ["B", "A", "C"]
        ]

        batch = ImportBatch.from_nodes(pages)

        self.assertEqual([page.title for page in batch.pages], ["A", "B", "C"])
        self.assertEqual([job.index for job in batch.jobs()], [0, 1, 2])
        self.assertEqual(batch.jobs()[1].page.title, "B")

    def test_untitled_pages_sort_first(self):
        batch = ImportBatch.from_nodes([
            CanonicalNode(identifier="a", kind=NodeKind.PAGE, title="A"),
            CanonicalNode(identifier="none", kind=NodeKind.PAGE),
        ])

        self.assertIsNone(batch.pages[0].title)

    def test_iter_nodes_walks_all_depths_in_document_order(self):
        page = CanonicalNode(identifier="p", kind=NodeKind.PAGE, title="P", children=[
            block("1", "one", [block("1.1", "one.one")]),
            block("2", "two"),
        ])

        batch = ImportBatch.from_nodes([page])

        self.assertEqual([node.identifier for node in batch.iter_nodes()], ["p", "1", "1.1", "2"])


class TestGraphStore(unittest.TestCase):
    """Test graph store operations."""

    def setUp(self):
        self.store = GraphStore(":memory:")
        self.store.connect()
        self.store.initialize_database()

    def tearDown(self):
        self.store.disconnect()

    def test_requires_connection(self):
        with self.assertRaises(RuntimeError):
            GraphStore(":memory:").get_block("x")

    def test_stubs_are_created_once(self):
        self.assertEqual(self.store.transact_stubs(["a", "b"]), 2)
        self.assertEqual(self.store.transact_stubs(["b", "c"]), 1)

        stub = self.store.get_block("a")
        self.assertIsNotNone(stub)
        self.assertIsNone(stub["kind"])

    def test_create_page_fills_stub(self):
        self.store.transact_stubs(["page-1"])

        page = self.store.create_page("  My Page ", "page-1", ContentFormat.ORG, {"tags": ["x"]})

        self.assertEqual(page["uuid"], "page-1")
        self.assertEqual(page["page_name"], "my page")
        self.assertEqual(page["title"], "My Page")
        self.assertEqual(page["format"], "org")
        self.assertEqual(page["properties"], {"tags": ["x"]})
        self.assertTrue(self.store.page_exists("my page"))

    def test_create_page_rejects_empty_title(self):
        with self.assertRaises(StoreError):
            self.store.create_page("   ", "page-1")

    def test_create_page_rejects_duplicate_name(self):
        self.store.create_page("Alpha", "page-1")

        with self.assertRaises(StoreError):
            self.store.create_page("alpha", "page-2")

    def test_create_page_rejects_unserializable_properties(self):
        with self.assertRaises(StoreError):
            self.store.create_page("Alpha", "page-1", properties={"bad": object()})
        self.assertFalse(self.store.page_exists("alpha"))

    def test_insert_block_tree_preserves_order(self):
        page = self.store.create_page("Alpha", "page-1")
        nodes = [
            block("b1", "one", [block("b1.1", "one.one"), block("b1.2", "one.two")]),
            block("b2", "two"),
            block("b3", "three"),
        ]

        written = self.store.insert_block_tree(nodes, page["uuid"], page["uuid"])

        self.assertEqual(written, ["b1", "b1.1", "b1.2", "b2", "b3"])
        self.assertEqual([b["content"] for b in self.store.get_children("page-1")], ["one", "two", "three"])
        self.assertEqual([b["content"] for b in self.store.get_children("b1")], ["one.one", "one.two"])
        self.assertEqual(self.store.get_block("b1.1")["page_uuid"], "page-1")

    def test_insert_as_sibling_shifts_following_blocks(self):
        page = self.store.create_page("Alpha", "page-1")
        self.store.insert_block_tree([block("b1", "one"), block("b2", "two")], "page-1", "page-1")

        self.store.insert_block_tree([block("n1", "new")], page["uuid"], "b1", sibling=True)

        self.assertEqual([b["content"] for b in self.store.get_children("page-1")], ["one", "new", "two"])

    def test_insert_without_keep_uuid_allocates_identifiers(self):
        self.store.create_page("Alpha", "page-1")

        written = self.store.insert_block_tree([block("b1", "one")], "page-1", "page-1", keep_uuid=False)

        self.assertNotEqual(written, ["b1"])
        self.assertIsNone(self.store.get_block("b1"))

    def test_failed_insert_rolls_back(self):
        self.store.create_page("Alpha", "page-1")

        with self.assertRaises(StoreError):
            self.store.insert_block_tree([block("b1", "one"), block("page-1", "clash")], "page-1", "page-1")

        self.assertIsNone(self.store.get_block("b1"))
        self.assertEqual(self.store.get_children("page-1"), [])

    def test_block_references_are_recorded(self):
        self.store.create_page("Alpha", "page-1")

        self.store.insert_block_tree([block("b1", f"see (({TARGET_UUID.upper()}))")], "page-1", "page-1")

        self.assertEqual(self.store.get_refs("b1"), [TARGET_UUID])
        self.assertEqual(self.store.get_all_referenced_block_ids(), [TARGET_UUID])

    def test_set_blocks_id_skips_stubs_and_is_idempotent(self):
        self.store.create_page("Alpha", "page-1")
        self.store.insert_block_tree([block(TARGET_UUID, "target")], "page-1", "page-1")
        self.store.transact_stubs(["dangling"])

        self.assertEqual(self.store.set_blocks_id([TARGET_UUID, "dangling", "unknown"]), 1)
        self.assertEqual(self.store.get_block(TARGET_UUID)["properties"]["id"], TARGET_UUID)
        self.assertEqual(self.store.set_blocks_id([TARGET_UUID]), 0)

    def test_list_pages(self):
        self.store.create_page("Beta", "page-2")
        self.store.create_page("Alpha", "page-1", whiteboard=True)

        pages = self.store.list_pages()

        self.assertEqual([page["title"] for page in pages], ["Alpha", "Beta"])
        self.assertEqual(pages[0]["kind"], "whiteboard")


class TestHelpers(unittest.TestCase):

    def test_sanitize_page_name(self):
        self.assertEqual(sanitize_page_name("  Hello World "), "hello world")
        self.assertEqual(sanitize_page_name(None), "")

    def test_extract_block_refs(self):
        content = f"(({TARGET_UUID})) and again (({TARGET_UUID})) but not [[{TARGET_UUID}]]"
        self.assertEqual(extract_block_refs(content), [TARGET_UUID])
        self.assertEqual(extract_block_refs(None), [])


class TestWhiteboard(unittest.TestCase):

    def shape_node(self, shape):
        return CanonicalNode(
            identifier="shape-1",
            kind=NodeKind.SHAPE,
            properties={"ls-type": "whiteboard-shape", "logseq.tldraw.shape": shape},
        )

    def test_migrate_legacy_shape(self):
        record = to_shape_record(self.shape_node({
            "id": "old-id",
            "type": "box",
            "point": {"x": 1, "y": 2},
            "size": {"width": 10, "height": 20},
        }))

        migrated = migrate_shape_block(record, 3)
        shape = migrated["block/properties"]["logseq.tldraw.shape"]

        self.assertEqual(shape["index"], "a00003")
        self.assertEqual(shape["id"], "shape-1")
        self.assertEqual(shape["point"], [1, 2])
        self.assertEqual(shape["size"], [10, 20])
        self.assertEqual(record["block/properties"]["logseq.tldraw.shape"]["id"], "old-id")

    def test_current_shape_keeps_index(self):
        record = to_shape_record(self.shape_node({"id": "shape-1", "index": "a5", "size": [1, 1]}))

        shape = migrate_shape_block(record, 0)["block/properties"]["logseq.tldraw.shape"]

        self.assertEqual(shape["index"], "a5")

    def test_non_shape_records_are_untouched(self):
        record = to_shape_record(CanonicalNode(identifier="x", kind=NodeKind.SHAPE, content="text"))

        self.assertIs(migrate_shape_block(record, 0), record)

    def test_whiteboard_props_link_page_and_portal_refs(self):
        record = to_shape_record(self.shape_node({"type": "logseq-portal", "pageId": TARGET_UUID}))

        props = with_whiteboard_block_props(record, "board-1")

        self.assertEqual(props, {
            "block/page": "board-1",
            "block/parent": "board-1",
            "block/refs": [TARGET_UUID],
        })


if __name__ == '__main__':
    unittest.main()
