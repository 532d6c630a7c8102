from typing import Any, Dict, List, Optional

from catalog_api.collection import Store
from catalog_api.crud.inventory_crud import load_inventory, require_edit
from catalog_api.custom_id import render_custom_id
from catalog_api.exceptions import (
    ApplicationError,
    BadRequestError,
    NotFoundError,
    PreconditionFailedError,
    VersionConflictError,
)
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.item import ItemCreate, ItemList, ItemResponse, ItemUpdate
from catalog_api.query import Eq, OrderBy, TextSearch
from catalog_api.utils import clean_str, new_id, normalize_tags, now_iso, page_window, parse_id

# Create a child logger for this module
logger = get_child_logger("crud.item")

NEWEST_FIRST = (OrderBy("updatedAt", descending=True), OrderBy("id", descending=True))
ITEMS_COUNT = "stats/itemsCount"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _option_values(options: Any) -> List[Any]:
    values = []
    for option in options or []:
        values.append(option.get("value") if isinstance(option, dict) else option)
    return values


def validate_field_values(schema: Any, values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check item field values against the inventory's declared field schema.

    Inventories without a schema accept any values. Otherwise keys must be
    declared, numbers must be numeric within ``min``/``max`` and select
    values must be one of the options. ``None`` clears a value.
    """
    values = dict(values or {})
    if not isinstance(schema, list) or not schema:
        return values

    declared = {str(f.get("key")): f for f in schema if isinstance(f, dict)}
    for key, value in values.items():
        definition = declared.get(key)
        if definition is None:
            raise BadRequestError(f"Unknown field: {key}")
        if value is None:
            continue
        kind = definition.get("type")
        if kind == "number":
            if not _is_number(value):
                raise BadRequestError(f"Field {key} must be a number")
            low, high = definition.get("min"), definition.get("max")
            if _is_number(low) and value < low:
                raise BadRequestError(f"Field {key} must be >= {low}")
            if _is_number(high) and value > high:
                raise BadRequestError(f"Field {key} must be <= {high}")
        elif kind == "select":
            if value not in _option_values(definition.get("options")):
                raise BadRequestError(f"Field {key} must be one of the options")
    return values


async def load_item(store: Store, item_id: str) -> Dict[str, Any]:
    parse_id(item_id)
    doc = await store.items.get(item_id)
    if not doc:
        raise NotFoundError("Item not found")
    return doc


async def _adjust_items_count(store: Store, inventory_id: str, delta: int) -> None:
    try:
        await store.inventories.patch(inventory_id, increment={ITEMS_COUNT: delta})
    except ApplicationError as e:
        # legacy inventories may lack a stats object; the counter is advisory
        logger.warning(
            "Could not adjust inventory items count",
            extra={"inventory_id": inventory_id, "delta": delta, "error": str(e)},
        )


async def list_items(
    store: Store,
    inventory_id: str,
    q: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> ItemList:
    pg, lim = page_window(page, limit)
    with tracer.start_as_current_span("list_items") as span:
        span.set_attribute("inventory.id", inventory_id)
        span.set_attribute("page", pg)
        span.set_attribute("limit", lim)
        await load_inventory(store, inventory_id)

        filters: List[Any] = [Eq("inventoryId", inventory_id)]
        if q and q.strip():
            filters.append(TextSearch(("name", "title", "description"), q.strip()))

        logger.info(
            "Listing items",
            extra={"inventory_id": inventory_id, "page": pg, "limit": lim, "has_query": bool(q)},
        )
        total = await store.items.count(filters)
        docs = await store.items.query(filters, order_by=NEWEST_FIRST, offset=(pg - 1) * lim, limit=lim)
        items = [ItemResponse.model_validate(d) for d in docs]

        span.set_attribute("items.count", len(items))
        return ItemList(page=pg, limit=lim, total=total, items=items)


async def create_item(
    store: Store, user: Dict[str, Any], inventory_id: str, body: ItemCreate
) -> ItemResponse:
    """
    Create an item in an inventory the caller can write to.

    The item starts at version 1 and receives a custom ID when the inventory
    has an enabled custom-ID format.

    Raises:
        NotFoundError: If the inventory doesn't exist
        ForbiddenError: If the caller has no write access
        BadRequestError: If the name is missing or a field value is invalid
    """
    with tracer.start_as_current_span("create_item") as span:
        span.set_attribute("inventory.id", inventory_id)
        inventory = await load_inventory(store, inventory_id)
        await require_edit(store, user, inventory)

        name = clean_str(body.name) or clean_str(body.title)
        if not name:
            raise BadRequestError("name is required")
        fields = validate_field_values(inventory.get("fields"), body.fields)

        now = now_iso()
        doc = {
            "id": new_id(),
            "inventoryId": inventory_id,
            "name": name,
            "description": clean_str(body.description),
            "image": clean_str(body.image),
            "tags": normalize_tags(body.tags),
            "fields": fields,
            "customId": await render_custom_id(store, inventory, fields),
            "version": 1,
            "createdBy": str(user["id"]),
            "createdAt": now,
            "updatedAt": now,
        }
        span.set_attribute("item.id", doc["id"])

        created = await store.items.create(doc)
        await _adjust_items_count(store, inventory_id, 1)

        logger.info(
            "Item created",
            extra={"item_id": doc["id"], "inventory_id": inventory_id, "custom_id": doc["customId"]},
        )
        return ItemResponse.model_validate(created)


async def get_item(store: Store, item_id: str) -> ItemResponse:
    with tracer.start_as_current_span("get_item") as span:
        span.set_attribute("item.id", item_id)
        return ItemResponse.model_validate(await load_item(store, item_id))


async def _parent_for_edit(store: Store, user: Dict[str, Any], item: Dict[str, Any]) -> Dict[str, Any]:
    inventory = await store.inventories.get(str(item.get("inventoryId")))
    if not inventory:
        raise NotFoundError("Inventory not found")
    await require_edit(store, user, inventory)
    return inventory


async def update_item(
    store: Store, user: Dict[str, Any], item_id: str, body: ItemUpdate
) -> ItemResponse:
    """
    Update an item if the submitted version matches the stored one.

    The version check and the increment happen in a single conditional
    patch, so two writers holding the same version cannot both succeed.

    Raises:
        BadRequestError: If ``version`` is missing
        VersionConflictError: If the stored version differs; carries the
            current item
    """
    with tracer.start_as_current_span("update_item") as span:
        span.set_attribute("item.id", item_id)
        if body.version is None:
            raise BadRequestError("version is required")
        span.set_attribute("item.version", body.version)

        item = await load_item(store, item_id)
        inventory = await _parent_for_edit(store, user, item)

        present = body.model_fields_set
        changes: Dict[str, Any] = {}
        if "name" in present or "title" in present:
            name = clean_str(body.name if "name" in present else body.title)
            if not name:
                raise BadRequestError("name cannot be empty")
            changes["name"] = name
        for key in ("description", "image"):
            if key in present:
                changes[key] = clean_str(getattr(body, key))
        if "tags" in present:
            changes["tags"] = normalize_tags(body.tags)
        if "fields" in present:
            changes["fields"] = validate_field_values(inventory.get("fields"), body.fields)
        changes["updatedAt"] = now_iso()

        try:
            if item.get("version") is None:
                # items created before versioning count as version 1
                if body.version != 1:
                    raise PreconditionFailedError("version mismatch")
                saved = await store.items.patch(
                    item_id, set_fields={**changes, "version": 2}, if_match=item.get("_etag")
                )
            else:
                saved = await store.items.patch(
                    item_id,
                    set_fields=changes,
                    increment={"version": 1},
                    expected={"version": body.version},
                )
        except PreconditionFailedError:
            current = await store.items.get(item_id)
            span.set_attribute("error", True)
            span.set_attribute("error.type", "version_conflict")
            logger.warning(
                "Item version conflict",
                extra={
                    "item_id": item_id,
                    "submitted_version": body.version,
                    "current_version": (current or {}).get("version"),
                },
            )
            if current is None:
                raise NotFoundError("Item not found")
            raise VersionConflictError(
                "Version conflict",
                current=ItemResponse.model_validate(current).model_dump(by_alias=True),
            )

        logger.info(
            "Item updated",
            extra={"item_id": item_id, "version": saved.get("version"), "fields": sorted(changes)},
        )
        return ItemResponse.model_validate(saved)


async def delete_item(store: Store, user: Dict[str, Any], item_id: str) -> None:
    with tracer.start_as_current_span("delete_item") as span:
        span.set_attribute("item.id", item_id)
        item = await load_item(store, item_id)
        await _parent_for_edit(store, user, item)

        if not await store.items.delete(item_id):
            raise NotFoundError("Item not found")
        await _adjust_items_count(store, str(item["inventoryId"]), -1)

        for like in await store.likes.query(partition_key=item_id):
            await store.likes.delete(like["id"], partition_key=item_id)

        logger.info("Item deleted", extra={"item_id": item_id, "inventory_id": item.get("inventoryId")})
