from typing import Any, Dict, List, Optional

from catalog_api.collection import Store
from catalog_api.crud.inventory_crud import NEWEST_FIRST, to_summaries
from catalog_api.exceptions import BadRequestError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.inventory import InventorySummary, TopInventory
from catalog_api.models.search import InventoryHits, ItemHit, ItemHits, SearchResponse
from catalog_api.query import Gt, OrderBy, TextSearch
from catalog_api.utils import clean_str, page_window

# Create a child logger for this module
logger = get_child_logger("crud.search")

LATEST_DEFAULT = 10
LATEST_MAX = 50
TOP_SIZE = 5
SEARCH_DEFAULT = 20
SEARCH_MAX = 50
SEARCH_TYPES = ("all", "inventories", "items")


async def latest_inventories(store: Store, limit: Optional[int] = None) -> List[InventorySummary]:
    lim = min(limit if limit and limit > 0 else LATEST_DEFAULT, LATEST_MAX)
    with tracer.start_as_current_span("latest_inventories") as span:
        span.set_attribute("limit", lim)
        docs = await store.inventories.query(order_by=NEWEST_FIRST, limit=lim)
        return await to_summaries(store, docs)


async def top_inventories(store: Store) -> List[TopInventory]:
    """The five inventories with the most items, by the maintained item count."""
    with tracer.start_as_current_span("top_inventories") as span:
        docs = await store.inventories.query(
            [Gt("stats.itemsCount", 0)],
            order_by=(OrderBy("stats.itemsCount", descending=True),),
            limit=TOP_SIZE,
        )
        span.set_attribute("inventories.count", len(docs))
        return await to_summaries(store, docs, model=TopInventory)


async def all_tags(store: Store) -> List[str]:
    return await store.inventories.distinct_array_values("tags")


def _item_hit(doc: Dict[str, Any]) -> ItemHit:
    return ItemHit(
        id=str(doc["id"]),
        inventory_id=str(doc["inventoryId"]) if doc.get("inventoryId") is not None else None,
        name=doc.get("name") or doc.get("title") or "",
        description=doc.get("description") or "",
        image=doc.get("image") or "",
        tags=doc.get("tags") if isinstance(doc.get("tags"), list) else [],
        updated_at=doc.get("updatedAt"),
    )


async def search(
    store: Store,
    q: Optional[str],
    kind: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> SearchResponse:
    """
    Full-text-ish search over inventories and items.

    Args:
        store: Document store
        q: Text to look for in titles, names, descriptions and tags
        kind: ``all`` (default), ``inventories`` or ``items``
        page: 1-based page number
        limit: Page size, capped at 50

    Raises:
        BadRequestError: If ``q`` is empty or ``kind`` is unknown
    """
    text = clean_str(q)
    if not text:
        raise BadRequestError("q is required")
    kind = (kind or "all").lower()
    if kind not in SEARCH_TYPES:
        raise BadRequestError(f"type must be one of {', '.join(SEARCH_TYPES)}")
    pg, lim = page_window(page, limit, default=SEARCH_DEFAULT, maximum=SEARCH_MAX)
    offset = (pg - 1) * lim

    with tracer.start_as_current_span("search") as span:
        span.set_attribute("search.type", kind)
        span.set_attribute("page", pg)
        result = SearchResponse(q=text, type=kind, page=pg, limit=lim)

        if kind in ("all", "inventories"):
            filters = [TextSearch(("title", "name", "description"), text, array_fields=("tags",))]
            total = await store.inventories.count(filters)
            docs = await store.inventories.query(filters, order_by=NEWEST_FIRST, offset=offset, limit=lim)
            result.inventories = InventoryHits(total=total, items=await to_summaries(store, docs))

        if kind in ("all", "items"):
            filters = [TextSearch(("name", "title", "description"), text, array_fields=("tags",))]
            total = await store.items.count(filters)
            docs = await store.items.query(filters, order_by=NEWEST_FIRST, offset=offset, limit=lim)
            result.items = ItemHits(total=total, items=[_item_hit(d) for d in docs])

        logger.info(
            "Search completed",
            extra={
                "type": kind,
                "inventories": result.inventories.total if result.inventories else None,
                "items": result.items.total if result.items else None,
            },
        )
        return result
