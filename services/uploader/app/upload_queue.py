"""
Client-side upload queue.

Holds the archives the user picked, each with its own status:

    pending -> uploading -> success | skipped | error

submit() hands pending items, in the order they were added, to a single
worker that uploads them one at a time. Running one upload at a time keeps
the server's duplicate check and history append free of races between our
own requests. Finished items are never retried; the user re-adds the file.
"""

import asyncio
import logging
import os
import uuid
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

import httpx

logger = logging.getLogger("upload_queue")

ACCEPTED_SUFFIXES = {".zip"}


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class UploadableItem:
    id: str
    path: Path
    status: UploadStatus = UploadStatus.PENDING
    message: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name


class QueueBusyError(RuntimeError):
    """Raised when the queue is changed or resubmitted while it is submitting."""


# Sends one item and returns the server's response
Uploader = Callable[[UploadableItem], Awaitable[httpx.Response]]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Upload failed (HTTP {response.status_code})"


class UploadQueue:
    def __init__(self):
        self._items: List[UploadableItem] = []
        self._submitting = False

    @property
    def items(self) -> Tuple[UploadableItem, ...]:
        return tuple(self._items)

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def pending_count(self) -> int:
        return sum(1 for item in self._items if item.status is UploadStatus.PENDING)

    def add(self, paths: Iterable[Union[str, Path]]) -> List[UploadableItem]:
        """Queue every .zip in paths as pending; anything else is skipped with a warning."""
        added = []
        for raw in paths:
            path = Path(raw)
            if path.suffix.lower() not in ACCEPTED_SUFFIXES:
                logger.warning("Ignoring %s: only .zip archives are accepted", path.name)
                continue
            try:
                mtime = int(os.path.getmtime(path) * 1000)
            except OSError:
                mtime = 0
            item = UploadableItem(id=f"{path.name}-{mtime}-{uuid.uuid4().hex[:8]}", path=path)
            self._items.append(item)
            added.append(item)
        return added

    def remove(self, item_id: str) -> bool:
        if self._submitting:
            raise QueueBusyError("Cannot remove files while uploads are in progress")
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) != before

    def _set_status(self, item: UploadableItem, status: UploadStatus, message: Optional[str] = None) -> None:
        item.status = status
        item.message = message
        logger.info("%s -> %s%s", item.name, status.value, f" ({message})" if message else "")

    async def submit(self, upload: Uploader) -> Dict[str, int]:
        """
        Upload every pending item, one at a time, and return a count per
        final status. A failing item is marked as error and the worker moves
        on to the next one.
        """
        if self._submitting:
            raise QueueBusyError("Uploads are already in progress")

        work: "asyncio.Queue[UploadableItem]" = asyncio.Queue()
        batch = [item for item in self._items if item.status is UploadStatus.PENDING]
        for item in batch:
            work.put_nowait(item)

        self._submitting = True
        try:
            await self._worker(work, upload)
        finally:
            self._submitting = False

        return dict(Counter(item.status.value for item in batch))

    async def _worker(self, work: "asyncio.Queue[UploadableItem]", upload: Uploader) -> None:
        while not work.empty():
            item = work.get_nowait()
            self._set_status(item, UploadStatus.UPLOADING, "Sending...")
            try:
                response = await upload(item)
                if response.status_code == 201:
                    self._set_status(item, UploadStatus.SUCCESS, "Uploaded")
                elif response.status_code == 409:
                    self._set_status(item, UploadStatus.SKIPPED, "Skipped (already exists)")
                else:
                    raise RuntimeError(_error_message(response))
            except Exception as e:
                self._set_status(item, UploadStatus.ERROR, f"Failed: {e}")
            finally:
                work.task_done()
