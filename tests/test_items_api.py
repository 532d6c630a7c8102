from conftest import auth


def _create_item(client, inventory, user, **body):
    body.setdefault("name", "Dune")
    return client.post(f"/inventories/{inventory['id']}/items", json=body, headers=auth(user))


def test_item_update_and_version_conflict(client, make_user, make_inventory):
    owner = make_user()
    inventory = make_inventory(owner)

    created = _create_item(client, inventory, owner)
    assert created.status_code == 201
    item = created.json()
    assert item["version"] == 1

    first = client.put(f"/items/{item['id']}", json={"name": "Dune (1965)", "version": 1}, headers=auth(owner))
    assert first.status_code == 200
    assert first.json()["version"] == 2
    assert first.json()["name"] == "Dune (1965)"

    stale = client.put(f"/items/{item['id']}", json={"name": "Other", "version": 1}, headers=auth(owner))
    assert stale.status_code == 409
    assert stale.json()["current"]["version"] == 2
    assert stale.json()["current"]["name"] == "Dune (1965)"


def test_item_update_requires_version(client, make_user, make_inventory):
    owner = make_user()
    item = _create_item(client, make_inventory(owner), owner).json()
    response = client.put(f"/items/{item['id']}", json={"name": "x"}, headers=auth(owner))
    assert response.status_code == 400


def test_legacy_item_without_version_counts_as_one(client, store, make_user, make_inventory):
    owner = make_user()
    inventory = make_inventory(owner)
    store.items.insert(
        {"id": "5f2b1c9e8a7d6e5f4c3b2a19", "inventoryId": inventory["id"], "title": "Old", "fields": {}}
    )
    assert client.get("/items/5f2b1c9e8a7d6e5f4c3b2a19").json()["name"] == "Old"

    response = client.put(
        "/items/5f2b1c9e8a7d6e5f4c3b2a19", json={"description": "d", "version": 1}, headers=auth(owner)
    )
    assert response.status_code == 200
    assert response.json()["version"] == 2


def test_read_grant_cannot_create_items(client, store, make_user, make_inventory):
    owner = make_user("alice")
    reader = make_user("bob")
    inventory = make_inventory(owner)
    store.accesses.insert(
        {"id": reader["id"], "inventoryId": inventory["id"], "userId": reader["id"], "accessType": "read"}
    )
    assert _create_item(client, inventory, reader).status_code == 403

    store.accesses.insert(
        {"id": reader["id"], "inventoryId": inventory["id"], "userId": reader["id"], "accessType": "write"}
    )
    assert _create_item(client, inventory, reader).status_code == 201


def test_item_requires_name(client, make_user, make_inventory):
    owner = make_user()
    response = _create_item(client, make_inventory(owner), owner, name="")
    assert response.status_code == 400


def test_item_fields_are_checked_against_schema(client, make_user, make_inventory):
    owner = make_user()
    inventory = make_inventory(
        owner,
        fields=[
            {"key": "pages", "label": "Pages", "type": "number", "min": 1},
            {"key": "cover", "label": "Cover", "type": "select", "options": ["soft", "hard"]},
        ],
    )
    ok = _create_item(client, inventory, owner, fields={"pages": 412, "cover": "hard"})
    assert ok.status_code == 201
    assert ok.json()["fields"] == {"pages": 412, "cover": "hard"}

    assert _create_item(client, inventory, owner, fields={"pages": 0}).status_code == 400
    assert _create_item(client, inventory, owner, fields={"cover": "leather"}).status_code == 400
    assert _create_item(client, inventory, owner, fields={"isbn": "x"}).status_code == 400


def test_custom_id_is_rendered_on_create(client, make_user, make_inventory):
    owner = make_user()
    inventory = make_inventory(
        owner,
        fields=[{"key": "isbn", "label": "ISBN", "type": "text"}],
        customIdFormat={
            "elements": [
                {"type": "text", "value": "BK"},
                {"type": "seq", "pad": 3},
                {"type": "field", "key": "isbn"},
            ]
        },
    )
    first = _create_item(client, inventory, owner, fields={"isbn": "978"}).json()
    second = _create_item(client, inventory, owner).json()
    assert first["customId"] == "BK-001-978"
    assert second["customId"] == "BK-002-"


def test_items_count_and_top(client, make_user, make_inventory):
    owner = make_user()
    busy = make_inventory(owner, title="Busy")
    quiet = make_inventory(owner, title="Quiet")
    make_inventory(owner, title="Empty")
    for _ in range(3):
        _create_item(client, busy, owner)
    doomed = _create_item(client, quiet, owner).json()
    _create_item(client, quiet, owner)
    client.delete(f"/items/{doomed['id']}", headers=auth(owner))

    top = client.get("/inventories/top").json()
    assert [(t["title"], t["itemsCount"]) for t in top] == [("Busy", 3), ("Quiet", 1)]


def test_list_and_search_items(client, make_user, make_inventory):
    owner = make_user()
    inventory = make_inventory(owner)
    _create_item(client, inventory, owner, name="Red lamp")
    _create_item(client, inventory, owner, name="Blue chair", description="lamp-friendly")
    _create_item(client, inventory, owner, name="Table")

    listing = client.get(f"/inventories/{inventory['id']}/items").json()
    assert listing["total"] == 3
    found = client.get(f"/inventories/{inventory['id']}/items", params={"q": "LAMP"}).json()
    assert {i["name"] for i in found["items"]} == {"Red lamp", "Blue chair"}


def test_delete_item_needs_write(client, make_user, make_inventory):
    owner = make_user("alice")
    item = _create_item(client, make_inventory(owner), owner).json()
    assert client.delete(f"/items/{item['id']}", headers=auth(make_user("eve"))).status_code == 403
    assert client.delete(f"/items/{item['id']}", headers=auth(owner)).status_code == 200
    assert client.get(f"/items/{item['id']}").status_code == 404
