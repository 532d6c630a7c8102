import pytest

from catalog_api.access import (
    AccessLevel,
    accessible_inventories,
    effective_access,
    legacy_access_level,
    resolve_access,
)

OWNER = {"id": "owner-1", "role": "user"}
ADMIN = {"id": "admin-1", "role": "admin"}
USER = {"id": "user-1", "role": "user"}
INVENTORY = {"id": "inv-1", "ownerId": "owner-1", "access": {}}


def test_owner_has_write_even_with_read_grant():
    grant = {"inventoryId": "inv-1", "userId": "owner-1", "accessType": "read"}
    resolved = effective_access(OWNER, INVENTORY, grant)
    assert resolved.owner
    assert resolved.effective == AccessLevel.WRITE


def test_admin_has_write_on_any_inventory():
    resolved = effective_access(ADMIN, INVENTORY)
    assert resolved.admin
    assert resolved.can_edit


def test_legacy_is_admin_flag_counts_as_admin():
    assert effective_access({"id": "x", "isAdmin": True}, INVENTORY).can_edit


def test_anonymous_has_no_access():
    resolved = effective_access(None, INVENTORY)
    assert resolved.effective == AccessLevel.NONE
    assert not resolved.can_read


def test_canonical_grant_wins_over_legacy():
    inventory = dict(INVENTORY, access={"user-1": "write"})
    grant = {"inventoryId": "inv-1", "userId": "user-1", "accessType": "read"}
    assert effective_access(USER, inventory, grant).effective == AccessLevel.READ


@pytest.mark.parametrize(
    "access",
    [
        {"user-1": "write"},
        {"user-1": True},
        {"user-1": 1},
        {"user-1": 2},
        [{"userId": "user-1", "accessType": "write"}],
        [{"user_id": "user-1", "accessType": "write"}],
        [{"id": "user-1", "accessType": "write"}],
        {"users": [{"userId": "user-1", "accessType": "write"}]},
    ],
)
def test_legacy_write_shapes_match_canonical_write(access):
    canonical = effective_access(USER, INVENTORY, {"userId": "user-1", "accessType": "write"})
    legacy = effective_access(USER, dict(INVENTORY, access=access))
    assert legacy.effective == canonical.effective == AccessLevel.WRITE


@pytest.mark.parametrize(
    "access",
    [
        {"user-1": "read"},
        [{"userId": "user-1", "accessType": "read"}],
        {"users": [{"id": "user-1", "accessType": "read"}]},
    ],
)
def test_legacy_read_shapes_match_canonical_read(access):
    canonical = effective_access(USER, INVENTORY, {"userId": "user-1", "accessType": "read"})
    legacy = effective_access(USER, dict(INVENTORY, access=access))
    assert legacy.effective == canonical.effective == AccessLevel.READ


def test_write_anywhere_outranks_read():
    access = {"user-1": "read", "users": [{"userId": "user-1", "accessType": "write"}]}
    assert legacy_access_level(access, "user-1") == AccessLevel.WRITE


def test_legacy_entries_for_other_users_are_ignored():
    access = [{"userId": "someone-else", "accessType": "write"}, {"user-1": "write"}]
    assert legacy_access_level(access, "user-1") == AccessLevel.NONE


def test_false_or_zero_map_values_grant_nothing():
    assert legacy_access_level({"user-1": False}, "user-1") == AccessLevel.NONE
    assert legacy_access_level({"user-1": 0}, "user-1") == AccessLevel.NONE


async def test_resolve_access_reads_canonical_grant(store):
    store.inventories.insert(INVENTORY)
    store.accesses.insert(
        {"id": "user-1", "inventoryId": "inv-1", "userId": "user-1", "accessType": "write"}
    )
    resolved = await resolve_access(store, USER, INVENTORY)
    assert resolved.can_edit
    assert not resolved.owner


async def test_accessible_inventories_reconciles_every_source(store):
    store.inventories.insert({"id": "own", "ownerId": "user-1", "access": {}})
    store.inventories.insert({"id": "granted", "ownerId": "owner-1", "access": {}})
    store.inventories.insert({"id": "legacy", "ownerId": "owner-1", "access": {"user-1": "write"}})
    store.inventories.insert(
        {"id": "legacy-read", "ownerId": "owner-1", "access": [{"userId": "user-1", "accessType": "read"}]}
    )
    store.inventories.insert({"id": "other", "ownerId": "owner-1", "access": {}})
    store.accesses.insert(
        {"id": "user-1", "inventoryId": "granted", "userId": "user-1", "accessType": "write"}
    )

    writable = await accessible_inventories(store, USER, AccessLevel.WRITE)
    readable = await accessible_inventories(store, USER, AccessLevel.READ)

    assert set(writable) == {"own", "granted", "legacy"}
    assert set(readable) == {"own", "granted", "legacy", "legacy-read"}
    assert writable["own"].owner
