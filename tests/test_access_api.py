from azure.core.exceptions import ServiceRequestError

from conftest import auth


def _grants(response):
    return {e["user"]["email"]: e["accessType"] for e in response.json()["items"]}


def test_grant_by_email_and_id(client, store, make_user, make_inventory):
    owner = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    inventory = make_inventory(owner)
    url = f"/inventories/{inventory['id']}/access"

    response = client.put(
        url,
        json={
            "changes": [
                {"email": "  BOB@example.com ", "accessType": "write"},
                {"userId": carol["id"], "accessType": "comment"},
            ]
        },
        headers=auth(owner),
    )
    assert response.status_code == 200
    assert response.json()["owner"]["id"] == owner["id"]
    assert _grants(response) == {"bob@example.com": "write", "carol@example.com": "read"}
    assert store.accesses.ensure_calls == 1

    listed = client.get(url, headers=auth(owner))
    assert _grants(listed) == {"bob@example.com": "write", "carol@example.com": "read"}

    # bob can now manage access too
    assert client.get(url, headers=auth(bob)).status_code == 200
    assert client.get(url, headers=auth(carol)).status_code == 403


def test_regranting_replaces_the_existing_grant(client, store, make_user, make_inventory):
    owner = make_user("alice")
    bob = make_user("bob")
    inventory = make_inventory(owner)
    url = f"/inventories/{inventory['id']}/access"

    client.put(url, json={"changes": [{"userId": bob["id"], "accessType": "read"}]}, headers=auth(owner))
    client.put(url, json={"changes": [{"userId": bob["id"], "accessType": "write"}]}, headers=auth(owner))

    grants = store.accesses.all()
    assert len(grants) == 1
    assert grants[0]["accessType"] == "write"


def test_null_access_type_and_remove_delete_grants(client, make_user, make_inventory):
    owner = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    inventory = make_inventory(owner)
    url = f"/inventories/{inventory['id']}/access"
    client.put(
        url,
        json={
            "changes": [
                {"userId": bob["id"], "accessType": "write"},
                {"userId": carol["id"], "accessType": "read"},
            ]
        },
        headers=auth(owner),
    )

    response = client.put(
        url,
        json={"changes": [{"userId": bob["id"], "accessType": None}], "remove": [carol["id"]]},
        headers=auth(owner),
    )
    assert response.json()["items"] == []


def test_owner_and_unknown_entries_are_skipped(client, store, make_user, make_inventory):
    owner = make_user("alice")
    inventory = make_inventory(owner)
    response = client.put(
        f"/inventories/{inventory['id']}/access",
        json={
            "changes": [
                {"userId": owner["id"], "accessType": "read"},
                {"email": "nobody@example.com", "accessType": "write"},
                {"userId": "not-an-id", "accessType": "write"},
            ],
            "remove": ["not-an-id", owner["id"]],
        },
        headers=auth(owner),
    )
    assert response.status_code == 200
    assert response.json()["items"] == []
    assert store.accesses.all() == []


def test_grants_for_deleted_users_are_hidden(client, store, make_user, make_inventory):
    owner = make_user("alice")
    inventory = make_inventory(owner)
    store.accesses.insert(
        {
            "id": "5f2b1c9e8a7d6e5f4c3b2a19",
            "inventoryId": inventory["id"],
            "userId": "5f2b1c9e8a7d6e5f4c3b2a19",
            "accessType": "write",
        }
    )
    response = client.get(f"/inventories/{inventory['id']}/access", headers=auth(owner))
    assert response.json()["items"] == []


def test_access_requires_authentication(client, make_user, make_inventory):
    inventory = make_inventory(make_user())
    assert client.get(f"/inventories/{inventory['id']}/access").status_code == 401
    assert client.get("/access/my").status_code == 401


def test_my_access(client, store, make_user, make_inventory):
    bob = make_user("bob")
    owner = make_user("alice")
    make_inventory(bob, title="Own")
    make_inventory(owner, title="Legacy", access={bob["id"]: "write"})
    readable = make_inventory(owner, title="Readable")
    make_inventory(owner, title="Hidden")
    store.accesses.insert(
        {"id": bob["id"], "inventoryId": readable["id"], "userId": bob["id"], "accessType": "read"}
    )

    def titles(**params):
        response = client.get("/access/my", params=params, headers=auth(bob))
        assert response.status_code == 200
        return {e["inventory"]["title"]: e["accessType"] for e in response.json()["items"]}

    assert titles() == {"Own": "write", "Legacy": "write"}
    assert titles(type="read") == {"Own": "write", "Legacy": "write", "Readable": "read"}
    assert titles(type="read", excludeOwner="true") == {"Legacy": "write", "Readable": "read"}


def test_grant_policy_failure_does_not_fail_the_update(client, store, make_user, make_inventory):
    async def unreachable():
        raise ServiceRequestError("cosmos unreachable")

    store.accesses.ensure = unreachable
    owner = make_user("alice")
    bob = make_user("bob")
    inventory = make_inventory(owner)

    response = client.put(
        f"/inventories/{inventory['id']}/access",
        json={"changes": [{"userId": bob["id"], "accessType": "write"}]},
        headers=auth(owner),
    )
    assert response.status_code == 200
    assert _grants(response) == {"bob@example.com": "write"}
