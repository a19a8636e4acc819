"""
FastAPI app for the uploader service.

Responsibilities:
- Expose health and history endpoints (/health, /api/history, /api/history/page).
- On POST /api/upload:
    * Resolve the archive's identifier against the catalog CSV
    * Upload it to the configured Drive folder unless a file of that name exists
    * Prepend the new UploadRecord to the history file
- Convert every UploaderError, and every malformed request, into an
  {"error", "details"} JSON body.
"""

import logging
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, File, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware

from common.config import settings
from .catalog import Catalog, CsvCatalog
from .drive import DriveGateway, GoogleDriveGateway
from .errors import AuthError, StorageError, UploaderError, ValidationError
from .history import HistoryStore, JsonFileHistoryStore
from .models import ErrorResponse, HealthResponse, HistoryPage, UploadRecord, UploadResponse
from .pagination import PaginationState
from .uploader import upload_archive

app = FastAPI(title="Uploader Service", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
logger = logging.getLogger("uploader")

GatewayFactory = Callable[[str], DriveGateway]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

# -----------------------------------------------------------------------------
# Dependencies (overridden in tests)
# -----------------------------------------------------------------------------
def get_history_store() -> HistoryStore:
    return JsonFileHistoryStore(settings.history_path)

def get_catalog() -> Catalog:
    return CsvCatalog(settings.catalog_path, settings.catalog_id_column, settings.catalog_name_column)

def get_gateway_factory() -> GatewayFactory:
    def factory(access_token: str) -> DriveGateway:
        return GoogleDriveGateway(access_token, settings.google_client_id, settings.google_client_secret)
    return factory

def get_folder_id() -> str:
    return settings.drive_folder_id

# -----------------------------------------------------------------------------
# Error boundary
# -----------------------------------------------------------------------------
@app.exception_handler(UploaderError)
async def uploader_error_handler(request: Request, exc: UploaderError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s (%s)", request.method, request.url.path, exc.status_code, exc.message, exc.details)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # FastAPI's default is a 422 {"detail": [...]}; report it as a 400 instead
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid value')}"
        for err in exc.errors()
    )
    return await uploader_error_handler(request, ValidationError("Invalid request.", details=problems))

def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Authorization token is missing or invalid.")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Authorization token is missing or invalid.")
    return token

# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/health", response_model=HealthResponse)
def health():
    """
    Lightweight readiness endpoint. No external calls.
    """
    return HealthResponse(status="ok", service=settings.service_name)

# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------
@app.get("/api/history", response_model=List[UploadRecord], responses={500: {"model": ErrorResponse}})
def history(store: HistoryStore = Depends(get_history_store)):
    """
    Return the full upload history, newest first.
    """
    return store.load()

@app.get("/api/history/page", response_model=HistoryPage, responses={500: {"model": ErrorResponse}})
def history_page(
    page: int = Query(1, description="Requested page (1-based); out-of-range values are ignored"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, le=100, description="Rows per page"),
    store: HistoryStore = Depends(get_history_store),
):
    """
    One page of the history table plus the page-number controls for it.
    """
    records = store.load()
    state = PaginationState(total_items=len(records), page_size=page_size or settings.page_size)
    state.paginate(page)
    return HistoryPage(
        items=state.page_slice(records),
        current_page=state.current_page,
        total_pages=state.total_pages,
        total_items=state.total_items,
        page_size=state.page_size,
        pages=state.window(),
    )

# -----------------------------------------------------------------------------
# Upload
# -----------------------------------------------------------------------------
@app.post("/api/upload", response_model=UploadResponse, status_code=201, responses=ERROR_RESPONSES)
async def upload(
    file: Optional[UploadFile] = File(None),
    authorization: Optional[str] = Header(None),
    store: HistoryStore = Depends(get_history_store),
    catalog: Catalog = Depends(get_catalog),
    gateway_factory: GatewayFactory = Depends(get_gateway_factory),
    folder_id: str = Depends(get_folder_id),
):
    """
    Upload one archive to the user's Drive folder.

    201 on success, 409 when a file of the derived name already exists
    (nothing is uploaded or recorded), 400/401/404 for bad input.
    """
    token = _bearer_token(authorization)
    if file is None:
        raise ValidationError("No file found in the request.")

    try:
        if not file.filename:
            raise ValidationError("No file found in the request.")
        gateway = await run_in_threadpool(gateway_factory, token)
        record = await upload_archive(
            filename=file.filename,
            stream=file.file,
            mime_type=file.content_type,
            folder_id=folder_id,
            catalog=catalog,
            gateway=gateway,
            store=store,
        )
    except UploaderError:
        raise
    except Exception as e:
        logger.exception("Upload of %s failed: %s", file.filename, e)
        raise StorageError("Internal server error.", details=str(e)) from e
    finally:
        await file.close()

    return UploadResponse(
        message=f'File "{record.display_name}.zip" uploaded to your Google Drive.',
        data=record,
    )

# -----------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.service_port)
