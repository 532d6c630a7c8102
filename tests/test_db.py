from catalog_api import db
from catalog_api.db import ContainerType


class FakeDatabase:
    def __init__(self):
        self.created = []

    async def create_container_if_not_exists(self, id, partition_key, **kwargs):
        self.created.append((id, kwargs))
        return f"container:{id}"

    def get_container_client(self, name):
        return f"container:{name}"


class FakeClient:
    def __init__(self):
        self.database = FakeDatabase()
        self.database_creations = 0

    async def create_database_if_not_exists(self, id):
        self.database_creations += 1
        return self.database

    def get_database_client(self, name):
        return self.database


async def test_container_is_provisioned_once_per_process(monkeypatch):
    client = FakeClient()

    async def fake_client():
        return client

    monkeypatch.setattr(db, "_ensure_client", fake_client)
    monkeypatch.setattr(db, "_ensured", set())

    first = await db.ensure_container(ContainerType.INVENTORY_ACCESSES)
    second = await db.ensure_container(ContainerType.INVENTORY_ACCESSES)

    assert first == second == "container:inventoryaccesses"
    assert client.database_creations == 1
    _, kwargs = client.database.created[0]
    assert len(client.database.created) == 1
    assert kwargs["unique_key_policy"] == {"uniqueKeys": [{"paths": ["/userId"]}]}
