"""
Upload history storage.

The history is an append-only list of UploadRecord, newest first. The route
handlers only see the HistoryStore interface; JsonFileHistoryStore keeps the
whole list in one JSON array file that is rewritten on every append, and
InMemoryHistoryStore backs the tests.
"""

import json
import logging
import os
from typing import List, Optional, Protocol

from pydantic import ValidationError as ModelValidationError

from .errors import StorageError
from .models import UploadRecord

logger = logging.getLogger("history")


class HistoryStore(Protocol):
    def load(self) -> List[UploadRecord]:
        ...

    def append(self, record: UploadRecord) -> None:
        ...


class JsonFileHistoryStore:
    """
    History kept as a pretty-printed JSON array at `path`.

    append() is read -> prepend -> write. There is no lock around it: two
    processes appending at once can lose an entry.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[UploadRecord]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError("Failed to load upload history.", details=str(e)) from e

        if not isinstance(raw, list):
            raise StorageError(
                "Failed to load upload history.",
                details=f"expected a JSON array, got {type(raw).__name__}",
            )
        try:
            return [UploadRecord.model_validate(item) for item in raw]
        except ModelValidationError as e:
            raise StorageError("Failed to load upload history.", details=str(e)) from e

    def append(self, record: UploadRecord) -> None:
        records = self.load()
        records.insert(0, record)

        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(
                    [r.model_dump(by_alias=True) for r in records],
                    f,
                    ensure_ascii=False,
                    indent=2,
                )
        except OSError as e:
            raise StorageError("Failed to save upload history.", details=str(e)) from e
        logger.info("History now holds %d records (latest id=%s)", len(records), record.id)


class InMemoryHistoryStore:
    def __init__(self, records: Optional[List[UploadRecord]] = None):
        self._records = list(records or [])

    def load(self) -> List[UploadRecord]:
        return list(self._records)

    def append(self, record: UploadRecord) -> None:
        self._records.insert(0, record)
