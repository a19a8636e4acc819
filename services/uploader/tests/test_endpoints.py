import io

import pytest
from fastapi import UploadFile

from app.catalog import CsvCatalog
from app.errors import AuthError, StorageError, ValidationError
from app.history import JsonFileHistoryStore
from app.main import get_history_store, upload
from app.models import UploadRecord

FOLDER_ID = "folder-test"

AUTH = {"Authorization": "Bearer user-token"}
ARCHIVE = b"PK\x03\x04 fake zip bytes"


def _upload(client, filename="game_12345_v2.zip", headers=AUTH, content=ARCHIVE):
    return client.post(
        "/api/upload",
        files={"file": (filename, content, "application/zip")},
        headers=headers,
    )


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_upload_then_duplicate(client, store, fake_drive):
    """
    First upload lands in Drive and history; the second is a 409 and leaves
    history alone.
    """
    response = _upload(client)
    assert response.status_code == 201
    body = response.json()
    data = body["data"]
    assert data["gameName"] == "My_Game"
    assert data["driveLink"].startswith("https://drive.google.com/")
    assert data["uploadDate"]
    assert data["_id"]
    assert "My_Game.zip" in body["message"]

    stored = fake_drive.files[(FOLDER_ID, "My_Game.zip")]
    assert stored["content"] == ARCHIVE
    assert stored["mime_type"] == "application/zip"
    assert fake_drive.tokens == ["user-token"]

    history = client.get("/api/history").json()
    assert [h["_id"] for h in history] == [data["_id"]]

    again = _upload(client)
    assert again.status_code == 409
    assert "My_Game.zip" in again.json()["error"]
    assert len(client.get("/api/history").json()) == 1


def test_new_uploads_are_prepended(client):
    first = _upload(client, "game_12345_v2.zip").json()["data"]
    second = _upload(client, "other_777_.zip").json()["data"]
    assert second["gameName"] == "Other__The_Sequel_"
    history = client.get("/api/history").json()
    assert [h["_id"] for h in history] == [second["_id"], first["_id"]]


def test_missing_token_is_401(client, store):
    response = _upload(client, headers={})
    assert response.status_code == 401
    assert "error" in response.json()
    assert store.load() == []


def test_non_bearer_token_is_401(client):
    assert _upload(client, headers={"Authorization": "Basic abc"}).status_code == 401


def test_missing_file_is_400(client):
    response = client.post("/api/upload", headers=AUTH, data={"other": "x"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_filename_without_identifier_is_400(client, fake_drive):
    response = _upload(client, "game.zip")
    assert response.status_code == 400
    assert "game.zip" in response.json()["error"]
    assert fake_drive.files == {}


def test_unknown_identifier_is_404(client, fake_drive):
    response = _upload(client, "game_999_.zip")
    assert response.status_code == 404
    assert "999" in response.json()["error"]
    assert fake_drive.files == {}


def test_drive_rejecting_the_token_is_401(client, fake_drive):
    fake_drive.fail_with = AuthError("Google rejected the access token. Please log in again.")
    response = _upload(client)
    assert response.status_code == 401


def test_drive_failure_is_500_with_details(client, fake_drive, store):
    fake_drive.fail_with = StorageError("Google Drive upload failed.", details="HTTP 503 backend error")
    response = _upload(client)
    assert response.status_code == 500
    body = response.json()
    assert body["error"]
    assert body["details"]
    assert store.load() == []


def test_unexpected_failure_is_500_with_details(client, fake_drive):
    fake_drive.fail_with = ConnectionResetError("socket closed")
    response = _upload(client)
    assert response.status_code == 500
    assert response.json()["details"] == "socket closed"


def test_history_endpoint_reports_storage_errors(client, store, monkeypatch):
    def broken_load():
        raise StorageError("Failed to load upload history.")

    monkeypatch.setattr(store, "load", broken_load)
    response = client.get("/api/history")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to load upload history."}


def _fill(store, n):
    for i in range(n):
        store.append(UploadRecord(
            id=f"id-{i}",
            display_name=f"Game_{i}",
            remote_link=f"https://drive.google.com/file/d/{i}/view",
            timestamp="2025-01-01T00:00:00+00:00",
        ))


def test_history_page(client, store):
    _fill(store, 48)  # 10 pages of 5
    response = client.get("/api/history/page", params={"page": 5, "pageSize": 5})
    assert response.status_code == 200
    body = response.json()
    assert body["currentPage"] == 5
    assert body["totalPages"] == 10
    assert body["totalItems"] == 48
    assert body["pages"] == [1, "...", 4, 5, 6, "...", 10]
    # newest first: id-47 is on page 1, page 5 starts at index 20
    assert [i["_id"] for i in body["items"]] == ["id-27", "id-26", "id-25", "id-24", "id-23"]


def test_history_page_ignores_out_of_range_page(client, store):
    _fill(store, 12)
    body = client.get("/api/history/page", params={"page": 99, "pageSize": 5}).json()
    assert body["currentPage"] == 1
    assert body["pages"] == [1, 2, 3]
    assert len(body["items"]) == 5


def test_history_page_empty(client):
    body = client.get("/api/history/page").json()
    assert body["items"] == []
    assert body["currentPage"] == 1
    assert body["totalPages"] == 0
    assert body["pages"] == []


def test_text_in_file_field_is_400(client):
    response = client.post("/api/upload", headers=AUTH, data={"file": "plain text"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request."
    assert "file" in body["details"]


def test_invalid_page_size_is_400(client):
    response = client.get("/api/history/page", params={"pageSize": 0})
    assert response.status_code == 400
    body = response.json()
    assert "error" in body
    assert "pageSize" in body["details"]


def test_unreadable_history_file_is_500_json(api, client, tmp_path):
    path = tmp_path / "history.json"
    path.write_bytes(b'[{"_id": "1", "gameName": "\xff\xfe"}]')
    api.dependency_overrides[get_history_store] = lambda: JsonFileHistoryStore(str(path))

    response = client.get("/api/history")
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to load upload history."


@pytest.mark.asyncio
async def test_upload_without_filename_still_closes_the_file(store, catalog_path, fake_drive):
    file = UploadFile(io.BytesIO(b"PK"), filename="")
    with pytest.raises(ValidationError):
        await upload(
            file=file,
            authorization="Bearer user-token",
            store=store,
            catalog=CsvCatalog(catalog_path),
            gateway_factory=fake_drive.for_token,
            folder_id=FOLDER_ID,
        )
    assert file.file.closed
    assert fake_drive.tokens == []
