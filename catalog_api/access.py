"""
Access policy for inventories.

Effective permission for a (user, inventory) pair, in priority order:

1. admin role -> write
2. owner -> write (never overridden by a stored grant)
3. canonical grant record in ``inventoryaccesses`` -> its accessType
4. legacy embedded ``inventory.access`` in any of its historical shapes
5. none

``effective_access`` is the single evaluation function; ``resolve_access``
fetches the canonical grant for one inventory and ``accessible_inventories``
batches the same evaluation for list filters.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from catalog_api.collection import Store
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.query import Eq, In, LegacyGrantMention
from catalog_api.security import is_admin

logger = get_child_logger("access")


class AccessLevel(str, Enum):
    NONE = "none"
    READ = "read"
    WRITE = "write"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {AccessLevel.NONE: 0, AccessLevel.READ: 1, AccessLevel.WRITE: 2}

# Values the legacy map form used to mean "write".
_LEGACY_WRITE_VALUES = ("write", 1, 2)
_LEGACY_USER_KEYS = ("userId", "user_id", "id")


@dataclass(frozen=True)
class ResolvedAccess:
    owner: bool = False
    admin: bool = False
    grant: AccessLevel = AccessLevel.NONE

    @property
    def effective(self) -> AccessLevel:
        if self.owner or self.admin:
            return AccessLevel.WRITE
        return self.grant

    @property
    def can_edit(self) -> bool:
        return self.effective == AccessLevel.WRITE

    @property
    def can_read(self) -> bool:
        return self.effective != AccessLevel.NONE


def user_id_of(user: Optional[Dict[str, Any]]) -> Optional[str]:
    if not user:
        return None
    uid = user.get("id")
    return str(uid) if uid is not None else None


def is_owner(user: Optional[Dict[str, Any]], inventory: Dict[str, Any]) -> bool:
    uid = user_id_of(user)
    owner_id = inventory.get("ownerId")
    return uid is not None and owner_id is not None and str(owner_id) == uid


def _parse_level(value: Any) -> AccessLevel:
    if isinstance(value, str) and value.strip().lower() == "write":
        return AccessLevel.WRITE
    if isinstance(value, str) and value.strip().lower() == "read":
        return AccessLevel.READ
    return AccessLevel.NONE


def _map_value_level(value: Any) -> AccessLevel:
    if value is True:
        return AccessLevel.WRITE
    if isinstance(value, bool):
        return AccessLevel.NONE
    if isinstance(value, str):
        return _parse_level(value)
    if value in _LEGACY_WRITE_VALUES:
        return AccessLevel.WRITE
    return AccessLevel.NONE


def _entries_level(entries: Any, uid: str) -> AccessLevel:
    best = AccessLevel.NONE
    if not isinstance(entries, list):
        return best
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if not any(
            entry.get(key) is not None and str(entry[key]) == uid for key in _LEGACY_USER_KEYS
        ):
            continue
        level = _parse_level(entry.get("accessType"))
        if level.rank > best.rank:
            best = level
    return best


def legacy_access_level(access: Any, user_id: Optional[str]) -> AccessLevel:
    """
    Permission granted to ``user_id`` by a legacy embedded ``access`` value.

    Shapes honoured:
        map:    {"<uid>": "write" | True | 1 | 2 | "read"}
        array:  [{"userId"|"user_id"|"id": uid, "accessType": "write"|"read"}]
        nested: {"users": [ ...array shape... ]}

    Every shape is checked; write anywhere outranks read.
    """
    if not user_id or not access:
        return AccessLevel.NONE
    uid = str(user_id)

    candidates: List[AccessLevel] = []
    if isinstance(access, dict):
        if uid in access:
            candidates.append(_map_value_level(access[uid]))
        candidates.append(_entries_level(access.get("users"), uid))
    elif isinstance(access, list):
        candidates.append(_entries_level(access, uid))

    return max(candidates, key=lambda level: level.rank, default=AccessLevel.NONE)


def effective_access(
    user: Optional[Dict[str, Any]],
    inventory: Dict[str, Any],
    grant: Optional[Dict[str, Any]] = None,
) -> ResolvedAccess:
    """Reconcile admin role, ownership, canonical grant and legacy access."""
    if not user:
        return ResolvedAccess()

    admin = is_admin(user)
    owner = is_owner(user, inventory)
    if admin or owner:
        return ResolvedAccess(owner=owner, admin=admin, grant=AccessLevel.WRITE)

    if grant is not None:
        level = _parse_level(grant.get("accessType"))
        if level != AccessLevel.NONE:
            return ResolvedAccess(grant=level)

    return ResolvedAccess(grant=legacy_access_level(inventory.get("access"), user_id_of(user)))


async def find_grant(store: Store, inventory_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    rows = await store.accesses.query(
        [Eq("inventoryId", inventory_id), Eq("userId", user_id)],
        limit=1,
        partition_key=inventory_id,
    )
    return rows[0] if rows else None


async def resolve_access(
    store: Store, user: Optional[Dict[str, Any]], inventory: Dict[str, Any]
) -> ResolvedAccess:
    with tracer.start_as_current_span("resolve_access") as span:
        span.set_attribute("inventory.id", str(inventory.get("id")))
        uid = user_id_of(user)
        if not uid:
            return ResolvedAccess()

        grant = None
        if not (is_admin(user) or is_owner(user, inventory)):
            grant = await find_grant(store, str(inventory["id"]), uid)

        resolved = effective_access(user, inventory, grant)
        span.set_attribute("access.effective", resolved.effective.value)
        return resolved


async def can_edit(store: Store, user: Optional[Dict[str, Any]], inventory: Dict[str, Any]) -> bool:
    return (await resolve_access(store, user, inventory)).can_edit


async def can_read(store: Store, user: Optional[Dict[str, Any]], inventory: Dict[str, Any]) -> bool:
    return (await resolve_access(store, user, inventory)).can_read


async def accessible_inventories(
    store: Store, user: Dict[str, Any], minimum: AccessLevel
) -> Dict[str, ResolvedAccess]:
    """
    Inventories on which ``user`` has at least ``minimum`` access, mapped to
    the resolved access. Not used for admins, who match every inventory.

    Candidates come from ownership, canonical grants and legacy mentions; each
    is then evaluated with ``effective_access`` so canonical and legacy
    representations are reconciled exactly as for a single inventory.
    """
    uid = user_id_of(user)
    with tracer.start_as_current_span("accessible_inventories") as span:
        span.set_attribute("access.minimum", minimum.value)

        grants = {
            str(g["inventoryId"]): g
            for g in await store.accesses.query([Eq("userId", uid)])
        }
        candidates: Dict[str, Dict[str, Any]] = {}
        for inv in await store.inventories.query([Eq("ownerId", uid)]):
            candidates[str(inv["id"])] = inv
        for inv in await store.inventories.query([LegacyGrantMention(uid)]):
            candidates[str(inv["id"])] = inv

        missing = tuple(inv_id for inv_id in grants if inv_id not in candidates)
        if missing:
            for inv in await store.inventories.query([In("id", missing)]):
                candidates[str(inv["id"])] = inv

        result = {}
        for inv_id, inv in candidates.items():
            resolved = effective_access(user, inv, grants.get(inv_id))
            if resolved.effective.rank >= minimum.rank:
                result[inv_id] = resolved

        logger.info(
            "Resolved accessible inventories",
            extra={"user_id": uid, "minimum": minimum.value, "count": len(result)},
        )
        span.set_attribute("inventories.count", len(result))
        return result
