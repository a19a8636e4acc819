# Error taxonomy for the uploader service.
#
# Every error carries the HTTP status it maps to. main.py converts them into
# {"error": ..., "details": ...} payloads at the request boundary.

from typing import Optional


class UploaderError(Exception):
    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(UploaderError):
    """Bad or missing input (no file, no identifier in the filename)."""
    status_code = 400


class CatalogEntryNotFound(ValidationError):
    """The identifier parsed from the filename has no catalog row."""
    status_code = 404


class AuthError(UploaderError):
    """Missing, malformed or rejected bearer token. The user has to log in again."""
    status_code = 401


class ConflictError(UploaderError):
    """An object with the destination name already exists in the Drive folder."""
    status_code = 409


class StorageError(UploaderError):
    """Remote (Drive) or local (history/catalog file) storage failure."""
    status_code = 500
