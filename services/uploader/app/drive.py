"""
Google Drive gateway.

Thin wrapper over the Drive v3 API, authenticated as the end user with the
bearer token the browser (or the CLI login) obtained. Only the two calls the
upload flow needs: list-by-name-in-folder and create-with-stream.

All methods are blocking (googleapiclient is synchronous); callers in async
code run them through the threadpool.
"""

import logging
from typing import BinaryIO, Dict, List, Optional, Protocol

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .errors import AuthError, StorageError

logger = logging.getLogger("drive")

TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
DEFAULT_MIME_TYPE = "application/zip"


class DriveGateway(Protocol):
    def find_in_folder(self, name: str, folder_id: str) -> List[Dict]:
        ...

    def create(self, name: str, folder_id: str, stream: BinaryIO, mime_type: Optional[str] = None) -> Dict:
        ...


def _quote(value: str) -> str:
    """Escape a literal for use inside a Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _translate(e: HttpError, action: str) -> Exception:
    status = getattr(e.resp, "status", None)
    if status in (401, 403):
        return AuthError("Google rejected the access token. Please log in again.", details=str(e))
    return StorageError(f"Google Drive {action} failed.", details=str(e))


class GoogleDriveGateway:
    def __init__(self, access_token: str, client_id: str = "", client_secret: str = ""):
        creds = Credentials(
            token=access_token,
            token_uri=TOKEN_URI,
            client_id=client_id or None,
            client_secret=client_secret or None,
            scopes=DRIVE_SCOPES,
        )
        self.service = build("drive", "v3", credentials=creds, cache_discovery=False)

    def find_in_folder(self, name: str, folder_id: str) -> List[Dict]:
        query = f"'{_quote(folder_id)}' in parents and name='{_quote(name)}' and trashed=false"
        try:
            resp = self.service.files().list(q=query, fields="files(id)").execute()
        except HttpError as e:
            raise _translate(e, "lookup") from e
        return resp.get("files", [])

    def create(self, name: str, folder_id: str, stream: BinaryIO, mime_type: Optional[str] = None) -> Dict:
        media = MediaIoBaseUpload(stream, mimetype=mime_type or DEFAULT_MIME_TYPE, resumable=False)
        try:
            created = self.service.files().create(
                body={"name": name, "parents": [folder_id]},
                media_body=media,
                fields="id, webViewLink",
            ).execute()
        except HttpError as e:
            raise _translate(e, "upload") from e
        logger.info("Created Drive file id=%s name=%s", created.get("id"), name)
        return created
