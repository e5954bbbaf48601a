#!/usr/bin/env python3
"""
pagegraft - Page Tree Importer

Main entry point for pagegraft. Imports a Logseq EDN/JSON export or an OPML
outline into a DuckDB graph store and reports per-page results.
"""

import asyncio
import logging
import sys
import argparse
from pathlib import Path

from pagegraft.config import config
from pagegraft.database import GraphStore
from pagegraft.handler import ImportHandler
from pagegraft.models import ImportProgress, ImportReport
from pagegraft.notifications import RecordingNotifier
from pagegraft.pipeline import no_yield

EXTENSION_FORMATS = {
    ".edn": "edn",
    ".json": "json",
    ".opml": "opml",
    ".xml": "opml",
}


def setup_logging():
    """Configure logging for the application."""
    level = getattr(logging, config.get("logging.level", "INFO").upper())
    format_str = config.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = config.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def detect_format(path: Path) -> str:
    """
    Infer the import format from a file extension.

    Raises:
        ValueError: If the extension is not recognized
    """
    try:
        return EXTENSION_FORMATS[path.suffix.lower()]
    except KeyError:
        raise ValueError(f"Cannot infer import format from '{path.name}', use --format") from None


def print_progress(progress: ImportProgress):
    if progress.current_index:
        print(f"[{progress.current_index}/{progress.total}] {progress.current_page}")


def print_report(report: ImportReport, notifier: RecordingNotifier):
    print("\n" + "=" * 60)
    if not report.completed:
        print(f"IMPORT FAILED: {report.fatal_error}")
        print("=" * 60)
        return

    print(f"Imported {len(report.imported_titles)} of {report.total} pages")
    if report.cancelled:
        print("Import was cancelled before the last page")
    if report.failures:
        print("\nSkipped pages:")
        for outcome in report.failures:
            print(f"- {outcome.title}: {outcome.error.cause}")
    if report.resolution and report.resolution.error:
        print(f"\nReference resolution failed: {report.resolution.error}")
    print(f"\n{len(notifier.errors())} error notification(s)")
    print("=" * 60)


async def run_import(path: Path, format_name: str, db_path: str, yield_between_pages: bool) -> ImportReport:
    """
    Import one export file into the graph store.

    Args:
        path: The export file
        format_name: One of the supported formats
        db_path: DuckDB database file
        yield_between_pages: Pause between pages as configured

    Returns:
        The import report
    """
    raw = path.read_text(encoding="utf-8")
    notifier = RecordingNotifier()

    with GraphStore(db_path) as store:
        store.initialize_database()
        handler = ImportHandler(
            store,
            notifier=notifier,
            yield_fn=None if yield_between_pages else no_yield,
            on_progress=print_progress,
        )
        importers = {
            "edn": handler.import_from_edn,
            "json": handler.import_from_json,
            "opml": handler.import_from_opml,
        }
        report = await importers[format_name](
            raw, lambda pages: logging.info(f"Import of {path.name} finished")
        )

    print_report(report, notifier)
    return report


def list_pages(db_path: str):
    """Print all pages in the graph store."""
    with GraphStore(db_path) as store:
        store.initialize_database()
        pages = store.list_pages()
        for page in pages:
            children = store.get_children(page["uuid"])
            print(f"{page['title']} [{page['kind']}] ({len(children)} top-level blocks) {page['uuid']}")
        print(f"\n{len(pages)} page(s)")


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="pagegraft - Page Tree Importer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py import export.edn                    # Import a Logseq EDN export
  python main.py import export.json --db graph.db     # Import a JSON export into graph.db
  python main.py import outline.xml --format opml     # Import an OPML outline
  python main.py pages --db graph.db                  # List imported pages
        """
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="pagegraft 0.1.0"
    )

    store_options = argparse.ArgumentParser(add_help=False)
    store_options.add_argument(
        "--db",
        type=str,
        help="Path to the DuckDB graph store (default: database.filename from config)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", parents=[store_options], help="Import an export file")
    import_parser.add_argument("path", type=Path, help="Export file to import")
    import_parser.add_argument(
        "--format",
        choices=config.supported_formats,
        help="Export format (default: inferred from the file extension)"
    )
    import_parser.add_argument(
        "--no-yield",
        action="store_true",
        help="Do not pause between pages"
    )

    subparsers.add_parser("pages", parents=[store_options], help="List pages in the graph store")

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_arguments()
    if args.config:
        config.config_path = Path(args.config)
        config.reload()
    setup_logging()

    db_path = args.db or config.database_filename

    if args.command == "pages":
        list_pages(db_path)
        return

    try:
        format_name = args.format or detect_format(args.path)
        report = asyncio.run(run_import(args.path, format_name, db_path, not args.no_yield))

    except KeyboardInterrupt:
        logging.info("Import interrupted by user")
        print("\nImport interrupted.")
        sys.exit(1)

    except (OSError, ValueError) as e:
        logging.error(f"Import failed: {e}")
        print(f"\nImport failed: {e}")
        sys.exit(1)

    if not report.completed:
        sys.exit(1)


if __name__ == "__main__":
    main()
