"""
Catalog lookup: map the numeric identifier embedded in an archive name to
the display name the archive is stored under on Drive.

    game_12345_v2.zip  ->  "12345"  ->  "My Game"  ->  My_Game.zip
"""

import csv
import logging
import re
from typing import Dict, Optional, Protocol

from .errors import CatalogEntryNotFound, StorageError, ValidationError
from .models import CatalogEntry

logger = logging.getLogger("catalog")

IDENTIFIER_RE = re.compile(r"_(\d+)_")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
ARCHIVE_SUFFIX = ".zip"


def extract_identifier(filename: str) -> str:
    """Return the first run of digits enclosed by underscores in filename."""
    match = IDENTIFIER_RE.search(filename or "")
    if not match:
        raise ValidationError(f"Invalid file name format. No identifier found in: {filename}")
    return match.group(1)


def sanitize_name(display_name: str) -> str:
    """Replace every character that is not safe in a Drive file name with '_'."""
    return _UNSAFE_NAME_CHARS.sub("_", display_name.strip())


def destination_name(display_name: str) -> str:
    return f"{sanitize_name(display_name)}{ARCHIVE_SUFFIX}"


class Catalog(Protocol):
    def lookup(self, identifier: str) -> Optional[CatalogEntry]:
        ...


class CsvCatalog:
    """
    Read-only CSV catalog with a header row.

    The file is read again on every lookup so edits to the CSV are picked up
    without restarting the service.
    """

    def __init__(self, path: str, id_column: str = "appid", name_column: str = "name"):
        self.path = path
        self.id_column = id_column
        self.name_column = name_column

    def _read(self) -> Dict[str, CatalogEntry]:
        entries: Dict[str, CatalogEntry] = {}
        try:
            with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.DictReader(f)
                missing = {self.id_column, self.name_column} - set(reader.fieldnames or [])
                if missing:
                    raise StorageError(
                        "Catalog file is malformed.",
                        details=f"missing column(s): {', '.join(sorted(missing))}",
                    )
                for row in reader:
                    identifier = (row.get(self.id_column) or "").strip()
                    name = (row.get(self.name_column) or "").strip()
                    if not identifier or not name:
                        continue
                    # first row wins on duplicate identifiers
                    entries.setdefault(identifier, CatalogEntry(identifier=identifier, display_name=name))
        except OSError as e:
            raise StorageError("Failed to read catalog file.", details=str(e)) from e
        return entries

    def lookup(self, identifier: str) -> Optional[CatalogEntry]:
        return self._read().get(identifier)


def resolve(catalog: Catalog, filename: str) -> CatalogEntry:
    """Filename -> catalog entry, raising the matching UploaderError on failure."""
    identifier = extract_identifier(filename)
    entry = catalog.lookup(identifier)
    if entry is None:
        logger.warning("No catalog entry for identifier=%s (file=%s)", identifier, filename)
        raise CatalogEntryNotFound(f"No catalog entry with identifier {identifier}.")
    return entry
