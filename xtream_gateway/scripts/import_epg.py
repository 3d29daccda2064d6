"""
EPG Import Script.
Loads one or more XMLTV files into the catalog store.

    python -m xtream_gateway.scripts.import_epg guide.xml [more.xml ...]
"""
import argparse
import asyncio
import logging
from pathlib import Path
from xml.etree.ElementTree import ParseError

from xtream_gateway.config import get_settings
from xtream_gateway.services.epg_parser import EPGParser
from xtream_gateway.services.store import CatalogStore

logger = logging.getLogger(__name__)


async def import_epg(paths: list[Path], db_path: str) -> dict:
    """Import every file; one failing file does not stop the rest."""
    store = CatalogStore(db_path)
    await store.initialize()
    parser = EPGParser(store)

    total_programs = 0
    total_skipped = 0
    files_processed = 0

    for path in paths:
        try:
            stats = await parser.parse_file(path)
        except (FileNotFoundError, ParseError) as e:
            logger.error(f"Failed to import {path}: {e}")
            continue
        print(f"Imported {stats['programs']} programs from {path.name} ({stats['skipped']} skipped)")
        total_programs += stats['programs']
        total_skipped += stats['skipped']
        files_processed += 1

    return {
        'files_processed': files_processed,
        'total_programs': total_programs,
        'total_skipped': total_skipped,
    }


def main():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Import XMLTV guide files")
    parser.add_argument("files", nargs="+", type=Path, help="XMLTV files to import")
    parser.add_argument("--db", default=settings.database_path, help="SQLite database path")
    args = parser.parse_args()

    stats = asyncio.run(import_epg(args.files, args.db))
    print(f"Total: {stats['total_programs']} programs from {stats['files_processed']} files")


if __name__ == "__main__":
    main()
