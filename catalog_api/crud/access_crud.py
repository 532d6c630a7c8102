from typing import Any, Dict, List, Optional

from azure.core.exceptions import AzureError

from catalog_api.access import AccessLevel, accessible_inventories, is_owner
from catalog_api.collection import Store
from catalog_api.crud.inventory_crud import NEWEST_FIRST, load_inventory, require_edit, to_summaries
from catalog_api.exceptions import ApplicationError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.access import (
    AccessChange,
    AccessListResponse,
    AccessUpdate,
    GrantEntry,
    GrantUser,
    MyAccessEntry,
    MyAccessResponse,
)
from catalog_api.query import Eq, In
from catalog_api.utils import is_valid_id, now_iso

# Create a child logger for this module
logger = get_child_logger("crud.access")

MY_ACCESS_LIMIT = 500


def _grant_user(user: Dict[str, Any]) -> GrantUser:
    return GrantUser(
        id=str(user["id"]),
        name=user.get("name") or "",
        email=user.get("email") or "",
        avatar=user.get("avatar") or "",
        blocked=bool(user.get("blocked")),
    )


async def load_access(store: Store, inventory: Dict[str, Any]) -> AccessListResponse:
    """Owner profile plus every canonical grant whose user still exists."""
    inventory_id = str(inventory["id"])
    owner = None
    if inventory.get("ownerId") is not None:
        owner_doc = await store.users.get(str(inventory["ownerId"]))
        owner = _grant_user(owner_doc) if owner_doc else None

    grants = await store.accesses.query(partition_key=inventory_id)
    user_ids = tuple({str(g["userId"]) for g in grants})
    users = {}
    if user_ids:
        users = {str(u["id"]): u for u in await store.users.query([In("id", user_ids)])}

    items = [
        GrantEntry(access_type=g["accessType"], user=_grant_user(users[str(g["userId"])]))
        for g in grants
        if str(g["userId"]) in users
    ]
    return AccessListResponse(owner=owner, items=items)


async def get_access(store: Store, user: Dict[str, Any], inventory_id: str) -> AccessListResponse:
    with tracer.start_as_current_span("get_access") as span:
        span.set_attribute("inventory.id", inventory_id)
        inventory = await load_inventory(store, inventory_id)
        await require_edit(store, user, inventory)
        return await load_access(store, inventory)


async def _ensure_unique_grants(store: Store) -> None:
    try:
        await store.accesses.ensure()
    except (ApplicationError, AzureError, ValueError) as e:
        logger.warning("Could not ensure grant uniqueness policy", extra={"error": str(e)})


async def _resolve_user_id(store: Store, change: AccessChange) -> Optional[str]:
    if change.user_id and is_valid_id(change.user_id):
        return change.user_id
    if change.email:
        email = change.email.strip().lower()
        rows = await store.users.query([Eq("email", email)], limit=1)
        return str(rows[0]["id"]) if rows else None
    return None


async def _delete_grant(store: Store, inventory_id: str, user_id: str) -> int:
    rows = await store.accesses.query([Eq("userId", user_id)], partition_key=inventory_id)
    removed = 0
    for row in rows:
        if await store.accesses.delete(row["id"], partition_key=inventory_id):
            removed += 1
    return removed


async def _upsert_grant(store: Store, inventory_id: str, user_id: str, access_type: str) -> None:
    rows = await store.accesses.query([Eq("userId", user_id)], limit=1, partition_key=inventory_id)
    if rows:
        await store.accesses.patch(
            rows[0]["id"], partition_key=inventory_id, set_fields={"accessType": access_type}
        )
        return
    await store.accesses.upsert(
        {
            "id": user_id,
            "inventoryId": inventory_id,
            "userId": user_id,
            "accessType": access_type,
            "createdAt": now_iso(),
        }
    )


async def update_access(
    store: Store, user: Dict[str, Any], inventory_id: str, body: AccessUpdate
) -> AccessListResponse:
    """
    Apply grant changes and removals to an inventory.

    Each change names a user by id or email. A change without ``accessType``
    deletes the grant; any value other than ``write`` means ``read``. Entries
    naming the owner or an unknown user are skipped.

    Returns:
        The resulting access list
    """
    with tracer.start_as_current_span("update_access") as span:
        span.set_attribute("inventory.id", inventory_id)
        inventory = await load_inventory(store, inventory_id)
        await require_edit(store, user, inventory)
        await _ensure_unique_grants(store)

        removed = 0
        for raw in body.remove:
            uid = str(raw)
            if not is_valid_id(uid) or is_owner({"id": uid}, inventory):
                continue
            removed += await _delete_grant(store, inventory_id, uid)

        applied = 0
        for change in body.changes:
            uid = await _resolve_user_id(store, change)
            if not uid or is_owner({"id": uid}, inventory):
                continue
            if not change.access_type:
                removed += await _delete_grant(store, inventory_id, uid)
                continue
            access_type = "write" if change.access_type == "write" else "read"
            await _upsert_grant(store, inventory_id, uid, access_type)
            applied += 1

        span.set_attribute("grants.applied", applied)
        span.set_attribute("grants.removed", removed)
        logger.info(
            "Inventory access updated",
            extra={"inventory_id": inventory_id, "applied": applied, "removed": removed},
        )
        return await load_access(store, inventory)


async def my_access(
    store: Store, user: Dict[str, Any], access_type: str = "write", exclude_owner: bool = False
) -> MyAccessResponse:
    """
    Inventories on which the caller holds at least ``access_type``.

    ``type=read`` includes write. Ownership and legacy embedded grants count,
    since every candidate goes through the access policy.
    """
    level = AccessLevel.READ if access_type == "read" else AccessLevel.WRITE
    with tracer.start_as_current_span("my_access") as span:
        span.set_attribute("access.minimum", level.value)
        resolved = await accessible_inventories(store, user, level)
        if exclude_owner:
            resolved = {inv_id: r for inv_id, r in resolved.items() if not r.owner}

        docs: List[Dict[str, Any]] = []
        if resolved:
            docs = await store.inventories.query(
                [In("id", tuple(resolved))], order_by=NEWEST_FIRST, limit=MY_ACCESS_LIMIT
            )
        summaries = await to_summaries(store, docs)

        items = [
            MyAccessEntry(inventory=summary, access_type=resolved[summary.id].effective.value)
            for summary in summaries
        ]
        span.set_attribute("inventories.count", len(items))
        return MyAccessResponse(items=items)
