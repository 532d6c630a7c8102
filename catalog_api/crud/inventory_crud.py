from typing import Any, Dict, List, Optional

from catalog_api.access import AccessLevel, accessible_inventories, resolve_access
from catalog_api.collection import Store
from catalog_api.exceptions import (
    ApplicationError,
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
    VersionConflictError,
)
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.common import UserProfile
from catalog_api.models.inventory import (
    CustomIdFormatResponse,
    InventoryCreate,
    InventoryList,
    InventoryResponse,
    InventorySummary,
    InventoryUpdate,
    FieldsResponse,
)
from catalog_api.models.schema import (
    CustomIdFormat,
    FieldDefinition,
    dump_custom_id_format,
    dump_fields,
)
from catalog_api.query import ArrayContains, Eq, In, OrderBy, TextSearch
from catalog_api.security import is_admin
from catalog_api.utils import (
    clean_str,
    new_id,
    normalize_tags,
    now_iso,
    page_window,
    parse_id,
    unique,
)

# Create a child logger for this module
logger = get_child_logger("crud.inventory")

NEWEST_FIRST = (OrderBy("updatedAt", descending=True), OrderBy("id", descending=True))


async def load_inventory(store: Store, inventory_id: str) -> Dict[str, Any]:
    """
    Fetch an inventory document by id.

    Raises:
        BadRequestError: If the id is malformed
        NotFoundError: If the inventory doesn't exist
    """
    parse_id(inventory_id)
    doc = await store.inventories.get(inventory_id)
    if not doc:
        raise NotFoundError("Inventory not found")
    return doc


async def owner_profiles(store: Store, docs: List[Dict[str, Any]]) -> Dict[str, UserProfile]:
    """Batch-load the owner profile of every inventory in ``docs``."""
    owner_ids = unique(str(d["ownerId"]) for d in docs if d.get("ownerId") is not None)
    if not owner_ids:
        return {}
    users = await store.users.query([In("id", tuple(owner_ids))])
    return {str(u["id"]): UserProfile.from_user(u) for u in users}


def _with_owner(model, doc: Dict[str, Any], owners: Dict[str, UserProfile]):
    result = model.model_validate(doc)
    result.owner = owners.get(str(doc.get("ownerId")))
    return result


async def to_summaries(store: Store, docs: List[Dict[str, Any]], model=InventorySummary) -> list:
    owners = await owner_profiles(store, docs)
    return [_with_owner(model, d, owners) for d in docs]


async def to_response(store: Store, doc: Dict[str, Any]) -> InventoryResponse:
    owners = await owner_profiles(store, [doc])
    return _with_owner(InventoryResponse, doc, owners)


def check_custom_id_fields(cfg: Optional[CustomIdFormat], fields: List[Dict[str, Any]]) -> None:
    """``field`` elements of a custom-ID format must name a declared field."""
    if cfg is None:
        return
    declared = {str(f.get("key")) for f in fields if isinstance(f, dict)}
    for key in cfg.field_keys():
        if key not in declared:
            raise BadRequestError(f"customIdFormat references unknown field: {key}")


def stored_custom_id_format(doc: Dict[str, Any]) -> Optional[CustomIdFormat]:
    cfg = doc.get("customIdFormat")
    return CustomIdFormat.model_validate(cfg) if cfg else None


async def list_inventories(
    store: Store,
    user: Optional[Dict[str, Any]],
    owner: Optional[str] = None,
    q: Optional[str] = None,
    tag: Optional[str] = None,
    category: Optional[str] = None,
    access: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> InventoryList:
    """
    Retrieve a filtered, paginated list of inventories, newest first.

    Args:
        store: Document store
        user: Caller, or None for anonymous requests
        owner: ``me`` or an owner's user id
        q: Case-insensitive text over title/name/description
        tag: Exact tag (compared lower-cased)
        category: Exact category
        access: ``write`` or ``read``; only inventories the caller can edit/read
        page: 1-based page number
        limit: Page size, capped at 100

    Returns:
        InventoryList with owner profiles attached to each entry
    """
    pg, lim = page_window(page, limit)
    with tracer.start_as_current_span("list_inventories") as span:
        span.set_attribute("page", pg)
        span.set_attribute("limit", lim)

        filters: List[Any] = []
        if (owner == "me" or access) and not user:
            raise UnauthorizedError()
        if owner:
            filters.append(Eq("ownerId", str(user["id"]) if owner == "me" else owner))
        if q and q.strip():
            filters.append(TextSearch(("title", "name", "description"), q.strip()))
        if tag and tag.strip():
            filters.append(ArrayContains("tags", tag.strip().lower()))
        if category and category.strip():
            filters.append(Eq("category", category.strip()))
        if access:
            level = AccessLevel.WRITE if access == "write" else AccessLevel.READ
            if not is_admin(user):
                allowed = await accessible_inventories(store, user, level)
                filters.append(In("id", tuple(allowed)))

        logger.info(
            "Listing inventories",
            extra={
                "page": pg,
                "limit": lim,
                "owner": owner,
                "has_query": bool(q),
                "tag": tag,
                "category": category,
                "access": access,
            },
        )

        total = await store.inventories.count(filters)
        docs = await store.inventories.query(
            filters, order_by=NEWEST_FIRST, offset=(pg - 1) * lim, limit=lim
        )
        items = await to_summaries(store, docs)

        span.set_attribute("inventories.count", len(items))
        logger.info(f"Retrieved {len(items)} inventories", extra={"count": len(items), "total": total})
        return InventoryList(page=pg, limit=lim, total=total, items=items)


async def get_inventory(store: Store, inventory_id: str) -> InventoryResponse:
    with tracer.start_as_current_span("get_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        doc = await load_inventory(store, inventory_id)
        return await to_response(store, doc)


async def create_inventory(
    store: Store, user: Dict[str, Any], body: InventoryCreate
) -> InventoryResponse:
    """
    Create a new inventory owned by ``user``.

    Raises:
        BadRequestError: If the title is missing or the custom-ID format
            references an undeclared field
    """
    with tracer.start_as_current_span("create_inventory") as span:
        title = clean_str(body.title) or clean_str(body.name)
        if not title:
            raise BadRequestError("title is required")

        fields = dump_fields(body.fields)
        check_custom_id_fields(body.custom_id_format, fields)

        now = now_iso()
        doc = {
            "id": new_id(),
            "ownerId": str(user["id"]),
            "title": title,
            "description": clean_str(body.description),
            "category": clean_str(body.category),
            "image": clean_str(body.image) or clean_str(body.cover),
            "tags": normalize_tags(body.tags),
            "isPublic": bool(body.is_public),
            "fields": fields,
            "customIdFormat": dump_custom_id_format(body.custom_id_format),
            "access": body.access if body.access is not None else {},
            "stats": {"itemsCount": 0},
            "createdAt": now,
            "updatedAt": now,
        }
        span.set_attribute("inventory.id", doc["id"])

        created = await store.inventories.create(doc)
        logger.info(
            "Inventory created",
            extra={"inventory_id": doc["id"], "owner_id": doc["ownerId"]},
        )
        return await to_response(store, created)


async def require_edit(store: Store, user: Optional[Dict[str, Any]], inventory: Dict[str, Any]) -> None:
    if not (await resolve_access(store, user, inventory)).can_edit:
        logger.warning(
            "Edit denied",
            extra={"inventory_id": inventory.get("id"), "user_id": (user or {}).get("id")},
        )
        raise ForbiddenError()


def _apply_update(doc: Dict[str, Any], body: InventoryUpdate) -> Dict[str, Any]:
    present = body.model_fields_set
    updated = dict(doc)

    if "title" in present:
        updated["title"] = clean_str(body.title)
    elif "name" in present:
        updated["title"] = clean_str(body.name)
    if ("title" in present or "name" in present) and not updated["title"]:
        raise BadRequestError("title cannot be empty")

    if "image" in present:
        updated["image"] = clean_str(body.image)
    elif "cover" in present:
        updated["image"] = clean_str(body.cover)

    for key in ("description", "category"):
        if key in present:
            updated[key] = clean_str(getattr(body, key))
    if "tags" in present:
        updated["tags"] = normalize_tags(body.tags)
    if "is_public" in present:
        updated["isPublic"] = bool(body.is_public)
    if "fields" in present:
        updated["fields"] = dump_fields(body.fields)
    if "custom_id_format" in present:
        updated["customIdFormat"] = dump_custom_id_format(body.custom_id_format)
    if "access" in present:
        updated["access"] = body.access if body.access is not None else {}
    if "stats" in present:
        updated["stats"] = body.stats if body.stats is not None else {}

    if "custom_id_format" in present or "fields" in present:
        check_custom_id_fields(stored_custom_id_format(updated), updated.get("fields") or [])

    updated["updatedAt"] = now_iso()
    return updated


async def update_inventory(
    store: Store, user: Dict[str, Any], inventory_id: str, body: InventoryUpdate
) -> InventoryResponse:
    """
    Partially update an inventory. Only keys present in the body change.

    The replace is conditional on the etag read at the start, so a
    concurrent modification is reported instead of silently overwritten.

    Raises:
        NotFoundError: If the inventory doesn't exist
        ForbiddenError: If the caller cannot edit it
        VersionConflictError: If it changed between read and write
    """
    with tracer.start_as_current_span("update_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        doc = await load_inventory(store, inventory_id)
        await require_edit(store, user, doc)

        updated = _apply_update(doc, body)
        try:
            saved = await store.inventories.replace(updated, if_match=doc.get("_etag"))
        except PreconditionFailedError:
            span.set_attribute("error", True)
            span.set_attribute("error.type", "conflict")
            logger.warning("Inventory update conflict", extra={"inventory_id": inventory_id})
            current = await store.inventories.get(inventory_id)
            raise VersionConflictError(
                "Inventory was modified by another request",
                current=(await to_response(store, current)).model_dump(by_alias=True) if current else None,
            )

        logger.info(
            "Inventory updated",
            extra={"inventory_id": inventory_id, "fields": sorted(body.model_fields_set)},
        )
        return await to_response(store, saved)


async def _cascade(store: Store, inventory_id: str) -> None:
    items = await store.items.query([Eq("inventoryId", inventory_id)])
    for item in items:
        for like in await store.likes.query(partition_key=item["id"]):
            await store.likes.delete(like["id"], partition_key=item["id"])
        await store.items.delete(item["id"])

    for grant in await store.accesses.query(partition_key=inventory_id):
        await store.accesses.delete(grant["id"], partition_key=inventory_id)

    for post in await store.posts.query(partition_key=inventory_id):
        await store.posts.delete(post["id"], partition_key=inventory_id)

    logger.info(
        "Inventory dependents removed",
        extra={"inventory_id": inventory_id, "items": len(items)},
    )


async def delete_inventory(store: Store, user: Dict[str, Any], inventory_id: str) -> None:
    """
    Delete an inventory, then best-effort remove its items, their likes,
    grants and discussion posts.
    """
    with tracer.start_as_current_span("delete_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        doc = await load_inventory(store, inventory_id)
        await require_edit(store, user, doc)

        if not await store.inventories.delete(inventory_id):
            raise NotFoundError("Inventory not found")
        logger.info("Inventory deleted", extra={"inventory_id": inventory_id})

        try:
            await _cascade(store, inventory_id)
        except ApplicationError as e:
            span.set_attribute("cascade.failed", True)
            logger.error(
                "Failed to remove inventory dependents",
                extra={"inventory_id": inventory_id, "error": str(e)},
                exc_info=True,
            )


async def get_fields(store: Store, inventory_id: str) -> FieldsResponse:
    doc = await load_inventory(store, inventory_id)
    fields = doc.get("fields")
    return FieldsResponse(fields=fields if isinstance(fields, list) else [])


async def put_fields(
    store: Store, user: Dict[str, Any], inventory_id: str, fields: List[FieldDefinition]
) -> FieldsResponse:
    with tracer.start_as_current_span("put_fields") as span:
        span.set_attribute("inventory.id", inventory_id)
        doc = await load_inventory(store, inventory_id)
        await require_edit(store, user, doc)

        dumped = dump_fields(fields)
        # the existing format may not point at a removed field
        check_custom_id_fields(stored_custom_id_format(doc), dumped)
        saved = await store.inventories.patch(
            inventory_id, set_fields={"fields": dumped, "updatedAt": now_iso()}
        )
        logger.info("Inventory fields replaced", extra={"inventory_id": inventory_id, "count": len(dumped)})
        return FieldsResponse(fields=saved.get("fields") or [])


async def get_custom_id_format(store: Store, inventory_id: str) -> CustomIdFormatResponse:
    doc = await load_inventory(store, inventory_id)
    return CustomIdFormatResponse(custom_id_format=doc.get("customIdFormat"))


async def put_custom_id_format(
    store: Store, user: Dict[str, Any], inventory_id: str, cfg: Optional[CustomIdFormat]
) -> CustomIdFormatResponse:
    with tracer.start_as_current_span("put_custom_id_format") as span:
        span.set_attribute("inventory.id", inventory_id)
        doc = await load_inventory(store, inventory_id)
        await require_edit(store, user, doc)
        check_custom_id_fields(cfg, doc.get("fields") or [])

        saved = await store.inventories.patch(
            inventory_id,
            set_fields={"customIdFormat": dump_custom_id_format(cfg), "updatedAt": now_iso()},
        )
        logger.info("Inventory customIdFormat replaced", extra={"inventory_id": inventory_id})
        return CustomIdFormatResponse(custom_id_format=saved.get("customIdFormat"))
