"""Chapter enrichment from an ID / GUIDE_NAME / PATH table.

The table is a CSV export with (case-insensitive) ``ID``, ``GUIDE_NAME`` and
``PATH`` columns. A chapter whose raw marker title matches an ID takes the
row's display name as its title and the row's path as its destination.
Chapters without a match are left untouched and later routed to the
unmatched directory.
"""

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from chapterclip.exceptions import LookupTableError
from chapterclip.models import Chapter
from chapterclip.naming import UNKNOWN_PATH

logger = logging.getLogger(__name__)

ID_COLUMN = "ID"
NAME_COLUMN = "GUIDE_NAME"
PATH_COLUMN = "PATH"
UNKNOWN_NAME = "UNKNOWN_GUIDE_NAME"


@dataclass(frozen=True)
class LookupEntry:
    """Display name and destination sub-path for one chapter id."""

    display_name: str
    destination_path: str


def parse_lookup_csv(text: str) -> dict[str, LookupEntry]:
    """Parse CSV text into an id -> entry mapping.

    Quoted fields may contain commas and newlines. A leading byte-order mark
    is ignored. Rows without an id, or too short to hold every required
    column, are skipped.

    Raises:
        LookupTableError: If the header lacks a required column.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff").strip()))
    header = next(reader, None)
    if not header:
        raise LookupTableError("CSV data is empty. Cannot find header row.")

    names = [h.strip().upper() for h in header]
    missing = [
        f'"{column}"' for column in (ID_COLUMN, NAME_COLUMN, PATH_COLUMN)
        if column not in names
    ]
    if missing:
        raise LookupTableError(
            f"Could not find required columns {', '.join(missing)} in the sheet. "
            f"Headers found: [{', '.join(h.strip() for h in header)}]"
        )
    id_idx = names.index(ID_COLUMN)
    name_idx = names.index(NAME_COLUMN)
    path_idx = names.index(PATH_COLUMN)
    width = max(id_idx, name_idx, path_idx)

    table: dict[str, LookupEntry] = {}
    for row_number, row in enumerate(reader, start=2):
        columns = [c.strip() for c in row]
        if len(columns) <= width:
            if any(columns):
                logger.warning(f"Skipping row {row_number} due to insufficient columns")
            continue
        chapter_id = columns[id_idx]
        if chapter_id:
            table[chapter_id] = LookupEntry(
                display_name=columns[name_idx] or UNKNOWN_NAME,
                destination_path=columns[path_idx] or UNKNOWN_PATH,
            )

    logger.info(f"Parsed {len(table)} data rows from the sheet.")
    return table


def load_lookup_csv(source: str | Path) -> dict[str, LookupEntry]:
    """Read and parse a lookup CSV file.

    Raises:
        LookupTableError: If the file cannot be read or lacks columns.
    """
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise LookupTableError(f"Could not read lookup table '{path}': {e}") from e
    return parse_lookup_csv(text)


def apply_lookup(
    chapters: Iterable[Chapter],
    table: dict[str, LookupEntry],
) -> int:
    """Enrich chapters in place from ``table``.

    Returns:
        Number of chapters that matched an entry.
    """
    matched = 0
    for chapter in chapters:
        entry = table.get(chapter.original_title)
        if entry is None:
            logger.warning(
                f'Could not find a match for ID "{chapter.original_title}". '
                "Keeping original title."
            )
            continue
        chapter.title = entry.display_name
        chapter.path = entry.destination_path
        matched += 1
        logger.info(
            f'Matched ID "{chapter.original_title}". '
            f'New name is "{entry.display_name}".'
        )
    return matched
