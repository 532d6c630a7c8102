import json

import httpx
import pytest

from conftest import auth

from catalog_api.exceptions import UploadError
from catalog_api.uploads import DropboxUploader, OneDriveUploader, create_uploader


def test_anonymous_ticket_is_uploaded(client, uploader):
    response = client.post(
        "/support/tickets",
        json={"summary": "  Export is broken ", "priority": "High"},
        headers={"Referer": "https://catalog.example.com/inventories/1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True

    payload, filename = uploader.uploads[0]
    assert filename.startswith("ticket-") and filename.endswith(".json")
    assert body["file"]["path"] == f"/tickets/{filename}"
    assert payload["summary"] == "Export is broken"
    assert payload["reportedBy"] == {"id": None, "name": "Anonymous", "email": None}
    assert payload["link"] == "https://catalog.example.com/inventories/1"
    assert body["payload"] == payload


def test_ticket_records_reporter(client, uploader, make_user):
    alice = make_user("alice")
    client.post(
        "/support/tickets",
        json={"summary": "Typo", "priority": "Low", "link": "/items/1", "template": "bug"},
        headers=auth(alice),
    )
    payload, _ = uploader.uploads[0]
    assert payload["reportedBy"]["id"] == alice["id"]
    assert payload["link"] == "/items/1"
    assert payload["template"] == "bug"


def test_ticket_validation(client, uploader):
    assert client.post("/support/tickets", json={"summary": "x", "priority": "Urgent"}).status_code == 400
    assert client.post("/support/tickets", json={"summary": "  ", "priority": "Low"}).status_code == 400
    assert client.post("/support/tickets", json={"priority": "Low"}).status_code == 400
    assert uploader.uploads == []


async def test_dropbox_creates_folder_uploads_and_shares():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path.endswith("/files/get_metadata"):
            return httpx.Response(409, text='{"error_summary": "path/not_found/"}')
        if request.url.path.endswith("/files/create_folder_v2"):
            return httpx.Response(200, json={})
        if request.url.path.endswith("/files/upload"):
            arg = json.loads(request.headers["Dropbox-API-Arg"])
            assert arg["path"] == "/support/t.json"
            assert json.loads(request.content) == {"summary": "s"}
            return httpx.Response(200, json={"id": "id:1", "path_lower": "/support/t.json"})
        return httpx.Response(200, json={"url": "https://dropbox.example/s/t.json?dl=0"})

    uploader = DropboxUploader("token", "support/", transport=httpx.MockTransport(handler))
    stored = await uploader.store({"summary": "s"}, "t.json")

    assert stored == {
        "provider": "dropbox",
        "id": "id:1",
        "path": "/support/t.json",
        "url": "https://dropbox.example/s/t.json?dl=1",
    }
    assert calls == [
        "/2/files/get_metadata",
        "/2/files/create_folder_v2",
        "/2/files/upload",
        "/2/sharing/create_shared_link_with_settings",
    ]


async def test_onedrive_puts_file_into_folder():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(
            201,
            json={
                "id": "file-9",
                "name": "t.json",
                "parentReference": {"path": "/drive/root:/support"},
                "webUrl": "https://onedrive.example/t.json",
            },
        )

    uploader = OneDriveUploader("token", "/support/", transport=httpx.MockTransport(handler))
    stored = await uploader.store({"summary": "s"}, "t.json")

    assert seen == [("PUT", "/v1.0/me/drive/root:/support/t.json:/content")]
    assert stored["path"] == "/drive/root:/support/t.json"
    assert stored["url"] == "https://onedrive.example/t.json"


async def test_transport_errors_become_upload_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    uploader = OneDriveUploader("token", "support", transport=httpx.MockTransport(handler))
    with pytest.raises(UploadError):
        await uploader.store({}, "t.json")


async def test_rejected_upload_is_an_upload_error():
    uploader = OneDriveUploader(
        "token", "support", transport=httpx.MockTransport(lambda r: httpx.Response(403, text="denied"))
    )
    with pytest.raises(UploadError) as err:
        await uploader.store({}, "t.json")
    assert err.value.status_code == 502


async def test_missing_token_is_an_upload_error():
    with pytest.raises(UploadError):
        await DropboxUploader(None, "support").store({}, "t.json")


def test_unknown_provider():
    with pytest.raises(ValueError):
        create_uploader("ftp")
