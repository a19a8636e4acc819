# services/uploader/common/config.py
# Centralised configuration and logging setup for the uploader service.
#
# What this module provides:
#   1) A Settings dataclass holding all env-driven configuration
#   2) get_settings(): reads env vars once, configures logging once
#   3) settings: a module-level singleton (import and use anywhere)

import os
import logging
from functools import lru_cache
from dataclasses import dataclass


# ----------------------------
# Env helpers
# ----------------------------
def _env_str(key: str, default: str) -> str:
    val = os.getenv(key)
    return val.strip() if val and val.strip() else default

def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default


# ----------------------------
# Logging
# ----------------------------
def setup_logging(level: str) -> None:
    """Configure root + uvicorn loggers once."""
    if getattr(setup_logging, "_configured", False):
        return
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        # 2025-10-25 12:34:56,789 INFO [uploader] Uploaded My_Game.zip ...
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        level=lvl,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(lvl)
    setup_logging._configured = True


# ----------------------------
# Settings model
# ----------------------------
@dataclass(frozen=True)
class Settings:
    # service identity
    service_name: str
    service_port: int
    log_level: str

    # local storage
    data_root: str
    history_path: str
    catalog_path: str
    catalog_id_column: str
    catalog_name_column: str

    # google
    google_client_id: str
    google_client_secret: str
    drive_folder_id: str

    # history rendering
    page_size: int

    # client side
    api_url: str


def _mask_secret(value: str) -> str:
    return "****" if value else "<unset>"


# ----------------------------
# Factory (cached)
# ----------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    service_name = _env_str("SERVICE_NAME", "uploader-service")
    service_port = _env_int("SERVICE_PORT", 8000)
    log_level    = _env_str("LOG_LEVEL", "INFO")

    data_root    = _env_str("DATA_ROOT", "./data")
    history_path = _env_str("HISTORY_PATH", os.path.join(data_root, "history.json"))
    catalog_path = _env_str("CATALOG_PATH", os.path.join(data_root, "game_data.csv"))
    os.makedirs(os.path.dirname(os.path.abspath(history_path)), exist_ok=True)

    # Catalog columns default to the layout of the exported game_data.csv
    catalog_id_column   = _env_str("CATALOG_ID_COLUMN", "appid")
    catalog_name_column = _env_str("CATALOG_NAME_COLUMN", "name")

    google_client_id     = _env_str("GOOGLE_CLIENT_ID", "")
    google_client_secret = _env_str("GOOGLE_CLIENT_SECRET", "")
    drive_folder_id      = _env_str("GOOGLE_DRIVE_FOLDER_ID", "")

    page_size = max(1, _env_int("HISTORY_PAGE_SIZE", 5))

    api_url = _env_str("UPLOADER_API_URL", f"http://localhost:{service_port}")

    setup_logging(log_level)
    logging.getLogger("config").info(
        "Loaded settings service=%s port=%s history=%s catalog=%s folder=%s client_secret=%s page_size=%s",
        service_name, service_port, history_path, catalog_path, drive_folder_id or "<unset>",
        _mask_secret(google_client_secret), page_size,
    )

    return Settings(
        service_name=service_name,
        service_port=service_port,
        log_level=log_level,
        data_root=data_root,
        history_path=history_path,
        catalog_path=catalog_path,
        catalog_id_column=catalog_id_column,
        catalog_name_column=catalog_name_column,
        google_client_id=google_client_id,
        google_client_secret=google_client_secret,
        drive_folder_id=drive_folder_id,
        page_size=page_size,
        api_url=api_url,
    )


# Public singleton
# Import this from anywhere in the service: from common.config import settings
settings = get_settings()
