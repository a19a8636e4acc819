import os
import tempfile

# Settings are read once at import time; point them at a throwaway data dir
# before anything imports common.config.
os.environ.setdefault("DATA_ROOT", tempfile.mkdtemp(prefix="uploader-tests-"))
os.environ.setdefault("GOOGLE_DRIVE_FOLDER_ID", "folder-test")

import pytest
from fastapi.testclient import TestClient

from app.catalog import CsvCatalog
from app.history import InMemoryHistoryStore
from app.main import app, get_catalog, get_folder_id, get_gateway_factory, get_history_store

FOLDER_ID = "folder-test"


class FakeDrive:
    """
    In-memory stand-in for the Drive gateway. Files are keyed by
    (folder_id, name); `tokens` records the bearer token of every gateway built.
    """

    def __init__(self):
        self.files = {}
        self.tokens = []
        self.fail_with = None

    def for_token(self, token):
        self.tokens.append(token)
        return self

    def find_in_folder(self, name, folder_id):
        if self.fail_with:
            raise self.fail_with
        return [{"id": f["id"]} for key, f in self.files.items() if key == (folder_id, name)]

    def create(self, name, folder_id, stream, mime_type=None):
        if self.fail_with:
            raise self.fail_with
        file_id = f"file-{len(self.files) + 1}"
        self.files[(folder_id, name)] = {
            "id": file_id,
            "content": stream.read(),
            "mime_type": mime_type,
        }
        return {"id": file_id, "webViewLink": f"https://drive.google.com/file/d/{file_id}/view"}


@pytest.fixture
def catalog_path(tmp_path):
    path = tmp_path / "game_data.csv"
    path.write_text(
        "appid,name\n"
        "12345,My Game\n"
        "777,Other: The Sequel!\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def fake_drive():
    return FakeDrive()


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def api(catalog_path, fake_drive, store):
    """
    The FastAPI app with the history store, catalog and Drive gateway swapped
    for test doubles.
    """
    app.dependency_overrides[get_history_store] = lambda: store
    app.dependency_overrides[get_catalog] = lambda: CsvCatalog(catalog_path)
    app.dependency_overrides[get_gateway_factory] = lambda: fake_drive.for_token
    app.dependency_overrides[get_folder_id] = lambda: FOLDER_ID
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)
