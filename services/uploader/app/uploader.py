"""
The upload flow behind POST /api/upload.

Steps, each awaited before the next:
  1) filename -> identifier -> catalog entry
  2) derive the Drive file name from the catalog display name
  3) refuse when a file of that name already sits in the target folder
  4) stream the archive to Drive
  5) prepend an UploadRecord to the history

The duplicate check, the Drive upload and the history append are not atomic:
a crash between 4) and 5) leaves a Drive file without a history entry.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Optional

from starlette.concurrency import run_in_threadpool

from .catalog import Catalog, destination_name, resolve, sanitize_name
from .drive import DriveGateway
from .errors import ConflictError, StorageError
from .history import HistoryStore
from .models import UploadRecord

logger = logging.getLogger("uploader")


def now_iso() -> str:
    """Return current time in ISO-8601 with UTC timezone."""
    return datetime.now(tz=timezone.utc).isoformat()


async def upload_archive(
    *,
    filename: str,
    stream: BinaryIO,
    mime_type: Optional[str],
    folder_id: str,
    catalog: Catalog,
    gateway: DriveGateway,
    store: HistoryStore,
) -> UploadRecord:
    if not folder_id:
        raise StorageError("Target Drive folder is not configured.", details="GOOGLE_DRIVE_FOLDER_ID is empty")

    entry = await run_in_threadpool(resolve, catalog, filename)
    display_name = sanitize_name(entry.display_name)
    dest = destination_name(entry.display_name)

    existing = await run_in_threadpool(gateway.find_in_folder, dest, folder_id)
    if existing:
        logger.info("Skipping %s: %s already exists in folder %s", filename, dest, folder_id)
        raise ConflictError(f'File "{dest}" already exists in your Google Drive.')

    created = await run_in_threadpool(gateway.create, dest, folder_id, stream, mime_type)

    record = UploadRecord(
        id=uuid.uuid4().hex,
        display_name=display_name,
        remote_link=created.get("webViewLink") or "",
        timestamp=now_iso(),
    )
    await run_in_threadpool(store.append, record)
    logger.info("Uploaded %s as %s (identifier=%s, id=%s)", filename, dest, entry.identifier, record.id)
    return record
