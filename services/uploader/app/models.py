# Pydantic data models (schemas) for the uploader service.

from typing import List, Optional, Union
from pydantic import BaseModel, Field

# -----------------------------------------------------------------------------
# Persisted record
# -----------------------------------------------------------------------------

class UploadRecord(BaseModel):
    """
    One entry of the history file (newest first). Immutable once written.
    Aliases keep the field names the history file and the web client use.
    """
    id: str = Field(..., alias="_id")                      # Opaque unique id (uuid4 hex)
    display_name: str = Field(..., alias="gameName")       # Sanitised catalog name, no extension
    remote_link: str = Field(..., alias="driveLink")       # Drive webViewLink of the uploaded file
    timestamp: str = Field(..., alias="uploadDate")        # UTC ISO-8601 upload time

    model_config = {"populate_by_name": True, "frozen": True}


class CatalogEntry(BaseModel):
    identifier: str
    display_name: str = Field(..., alias="displayName")

    model_config = {"populate_by_name": True, "frozen": True}

# -----------------------------------------------------------------------------
# REST response models
# -----------------------------------------------------------------------------

class UploadResponse(BaseModel):
    """
    Response shape for POST /api/upload (201).
    """
    message: str
    data: UploadRecord


class ErrorResponse(BaseModel):
    """
    Body of every 4xx/5xx answer.
    """
    error: str
    details: Optional[str] = None


class HistoryPage(BaseModel):
    """
    Response shape for GET /api/history/page: one page of the history table
    plus the page-number controls to render under it.
    """
    items: List[UploadRecord]
    current_page: int = Field(..., alias="currentPage", ge=1)
    total_pages: int = Field(..., alias="totalPages", ge=0)
    total_items: int = Field(..., alias="totalItems", ge=0)
    page_size: int = Field(..., alias="pageSize", ge=1)
    pages: List[Union[int, str]]

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    status: str
    service: str
