from conftest import auth


def _seed(client, make_user, make_inventory):
    alice = make_user()
    lamps = make_inventory(alice, title="Lamps", tags=["lighting", "home"], updatedAt="2024-01-02T00:00:00.000000+00:00")
    make_inventory(alice, title="Chairs", description="some with lamp holders", tags=["home"],
                   updatedAt="2024-01-01T00:00:00.000000+00:00")
    make_inventory(alice, title="Stamps", tags=["Philately"], updatedAt="2024-01-03T00:00:00.000000+00:00")
    client.post(f"/inventories/{lamps['id']}/items", json={"name": "Desk lamp"}, headers=auth(alice))
    client.post(f"/inventories/{lamps['id']}/items", json={"name": "Bulb", "tags": ["lamp"]}, headers=auth(alice))
    return alice


def test_search_everything(client, make_user, make_inventory):
    _seed(client, make_user, make_inventory)
    response = client.get("/search", params={"q": "LAMP"})
    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "all"
    assert body["inventories"]["total"] == 2
    assert [i["title"] for i in body["inventories"]["items"]] == ["Lamps", "Chairs"]
    assert body["items"]["total"] == 2
    assert {i["name"] for i in body["items"]["items"]} == {"Desk lamp", "Bulb"}


def test_search_by_type_and_paging(client, make_user, make_inventory):
    _seed(client, make_user, make_inventory)
    items_only = client.get("/search", params={"q": "lamp", "type": "items", "limit": "1"}).json()
    assert "inventories" not in items_only
    assert items_only["items"]["total"] == 2
    assert len(items_only["items"]["items"]) == 1

    inventories_only = client.get("/search", params={"q": "home", "type": "inventories"}).json()
    assert "items" not in inventories_only
    assert inventories_only["inventories"]["total"] == 2


def test_search_validation(client):
    assert client.get("/search").status_code == 400
    assert client.get("/search", params={"q": "  "}).status_code == 400
    assert client.get("/search", params={"q": "x", "type": "users"}).status_code == 400


def test_tags_are_distinct_and_lowercase(client, make_user, make_inventory):
    _seed(client, make_user, make_inventory)
    assert client.get("/tags").json() == ["home", "lighting", "philately"]


def test_latest_inventories(client, make_user, make_inventory):
    _seed(client, make_user, make_inventory)
    latest = client.get("/inventories/latest", params={"limit": "2"}).json()
    assert len(latest) == 2
    assert latest[0]["owner"]["name"] == "Alice"
    assert client.get("/api/inventories/latest").status_code == 200
