from typing import Any, Dict, Iterator, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from catalog_api.app import create_app
from catalog_api.collection import Store, get_store
from catalog_api.realtime import get_broadcaster
from catalog_api.security import create_access_token, hash_password
from catalog_api.uploads import get_uploader
from catalog_api.utils import new_id, now_iso

from memory_store import memory_store

PASSWORD = "secret-pass"


class RecordingBroadcaster:
    def __init__(self):
        self.events: List[tuple] = []

    async def publish(self, inventory_id: str, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((inventory_id, event, payload))


class RecordingUploader:
    def __init__(self):
        self.uploads: List[tuple] = []

    async def store(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        self.uploads.append((payload, filename))
        return {"provider": "memory", "id": "file-1", "path": f"/tickets/{filename}", "url": None}


@pytest.fixture()
def store() -> Store:
    return memory_store()


@pytest.fixture()
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture()
def uploader() -> RecordingUploader:
    return RecordingUploader()


@pytest.fixture()
def app(store, broadcaster, uploader) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    app.dependency_overrides[get_uploader] = lambda: uploader
    return app


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def make_user(store):
    def _make_user(name: str = "alice", role: str = "user", **extra) -> Dict[str, Any]:
        doc = {
            "id": new_id(),
            "email": f"{name}@example.com",
            "name": name.title(),
            "avatar": "",
            "role": role,
            "blocked": False,
            "passwordHash": hash_password(PASSWORD),
            "tokenVersion": 0,
            "createdAt": now_iso(),
        }
        doc.update(extra)
        return store.users.insert(doc)

    return _make_user


@pytest.fixture()
def make_inventory(store):
    def _make_inventory(owner: Dict[str, Any], title: str = "Books", **extra) -> Dict[str, Any]:
        now = now_iso()
        doc = {
            "id": new_id(),
            "ownerId": owner["id"],
            "title": title,
            "description": "",
            "category": "",
            "image": "",
            "tags": [],
            "isPublic": False,
            "fields": [],
            "customIdFormat": None,
            "access": {},
            "stats": {"itemsCount": 0},
            "createdAt": now,
            "updatedAt": now,
        }
        doc.update(extra)
        return store.inventories.insert(doc)

    return _make_inventory


def auth(user: Optional[Dict[str, Any]]) -> Dict[str, str]:
    if not user:
        return {}
    return {"Authorization": f"Bearer {create_access_token(user)}"}
