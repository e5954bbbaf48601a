import asyncio
import json
from pathlib import Path

import pytest

from main import detect_format, list_pages, run_import
from pagegraft.database import GraphStore

EXPORT = {
    "version": 1,
    "blocks": [
        {"id": "page-2", "page-name": "Second", "children": [{"id": "b-2", "content": "two"}]},
        {"id": "page-1", "page-name": "First", "children": [{"id": "b-1", "content": "one"}]},
    ],
}


@pytest.mark.parametrize("name, expected", [
    ("graph.edn", "edn"),
    ("graph.JSON", "json"),
    ("outline.opml", "opml"),
    ("outline.xml", "opml"),
])
def test_detect_format_from_extension(name, expected):
    assert detect_format(Path(name)) == expected


def test_detect_format_rejects_unknown_extension():
    with pytest.raises(ValueError):
        detect_format(Path("notes.txt"))


def test_run_import_writes_pages_to_database_file(tmp_path, capsys):
    export = tmp_path / "graph.json"
    export.write_text(json.dumps(EXPORT), encoding="utf-8")
    db_path = str(tmp_path / "graph.db")

    report = asyncio.run(run_import(export, "json", db_path, yield_between_pages=False))

    assert report.completed
    assert report.imported_titles == ["First", "Second"]
    output = capsys.readouterr().out
    assert "[1/2] First" in output
    assert "Imported 2 of 2 pages" in output

    with GraphStore(db_path) as store:
        assert [page["title"] for page in store.list_pages()] == ["First", "Second"]
        assert [block["content"] for block in store.get_children("page-1")] == ["one"]


def test_run_import_reports_fatal_error(tmp_path, capsys):
    export = tmp_path / "broken.edn"
    export.write_text("{:blocks [", encoding="utf-8")

    report = asyncio.run(run_import(export, "edn", str(tmp_path / "graph.db"), yield_between_pages=False))

    assert not report.completed
    assert "IMPORT FAILED" in capsys.readouterr().out


def test_list_pages(tmp_path, capsys):
    db_path = str(tmp_path / "graph.db")
    with GraphStore(db_path) as store:
        store.initialize_database()
        store.create_page("Alpha", "page-1")

    list_pages(db_path)

    output = capsys.readouterr().out
    assert "Alpha [page]" in output
    assert "1 page(s)" in output
