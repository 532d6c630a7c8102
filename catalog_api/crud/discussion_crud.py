from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_api.collection import Store
from catalog_api.crud.inventory_crud import load_inventory
from catalog_api.exceptions import BadRequestError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.discussion import (
    MAX_POST_LENGTH,
    PostAuthor,
    PostCreate,
    PostList,
    PostResponse,
)
from catalog_api.query import Gt, In, OrderBy
from catalog_api.utils import new_id, now_iso

# Create a child logger for this module
logger = get_child_logger("crud.discussion")

DEFAULT_LIMIT = 200
MAX_LIMIT = 500
OLDEST_FIRST = (OrderBy("createdAt"), OrderBy("id"))


def parse_after(after: Optional[str]) -> Optional[str]:
    """
    Normalise the ``after`` cursor to the stored timestamp format.

    Raises:
        BadRequestError: If it is not an ISO-8601 timestamp
    """
    if not after:
        return None
    try:
        moment = datetime.fromisoformat(after.strip().replace("Z", "+00:00"))
    except ValueError:
        raise BadRequestError("Invalid 'after' timestamp")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _author(user: Optional[Dict[str, Any]], author_id: Any) -> PostAuthor:
    if not user:
        return PostAuthor(id=str(author_id or ""))
    return PostAuthor(
        id=str(user["id"]),
        name=user.get("name") or "User",
        avatar=user.get("avatar") or "",
    )


def to_post(doc: Dict[str, Any], author: PostAuthor) -> PostResponse:
    return PostResponse(
        id=str(doc["id"]),
        inventory_id=str(doc["inventoryId"]),
        text=doc.get("text") or "",
        created_at=doc.get("createdAt") or "",
        author=author,
    )


async def list_posts(
    store: Store, inventory_id: str, limit: Optional[int] = None, after: Optional[str] = None
) -> PostList:
    """
    Posts of an inventory's discussion thread in creation order.

    Args:
        store: Document store
        inventory_id: Inventory whose thread to read
        limit: Maximum number of posts, 1..500 (default 200)
        after: Only posts created strictly after this ISO timestamp
    """
    lim = min(limit if limit and limit > 0 else DEFAULT_LIMIT, MAX_LIMIT)
    cursor = parse_after(after)
    with tracer.start_as_current_span("list_posts") as span:
        span.set_attribute("inventory.id", inventory_id)
        span.set_attribute("limit", lim)
        await load_inventory(store, inventory_id)

        filters: List[Any] = [Gt("createdAt", cursor)] if cursor else []
        docs = await store.posts.query(
            filters, order_by=OLDEST_FIRST, limit=lim, partition_key=inventory_id
        )

        author_ids = tuple({str(d["authorId"]) for d in docs if d.get("authorId") is not None})
        authors = {}
        if author_ids:
            authors = {str(u["id"]): u for u in await store.users.query([In("id", author_ids)])}

        items = [to_post(d, _author(authors.get(str(d.get("authorId"))), d.get("authorId"))) for d in docs]
        span.set_attribute("posts.count", len(items))
        return PostList(items=items, count=len(items))


async def create_post(
    store: Store, user: Dict[str, Any], inventory_id: str, body: PostCreate
) -> PostResponse:
    """
    Persist a post. Broadcasting is left to the caller, after this returns.

    Raises:
        BadRequestError: If the text is empty or longer than 5000 characters
        NotFoundError: If the inventory doesn't exist
    """
    with tracer.start_as_current_span("create_post") as span:
        span.set_attribute("inventory.id", inventory_id)
        text = (body.text or "").strip()
        if not text:
            raise BadRequestError("text is required")
        if len(text) > MAX_POST_LENGTH:
            raise BadRequestError(f"text must be at most {MAX_POST_LENGTH} characters")

        await load_inventory(store, inventory_id)
        doc = {
            "id": new_id(),
            "inventoryId": inventory_id,
            "authorId": str(user["id"]),
            "text": text,
            "createdAt": now_iso(),
        }
        created = await store.posts.create(doc)
        span.set_attribute("post.id", doc["id"])
        logger.info(
            "Discussion post created",
            extra={"post_id": doc["id"], "inventory_id": inventory_id, "author_id": doc["authorId"]},
        )
        return to_post(created, _author(user, user["id"]))
