from typing import Any, Dict, Optional

from catalog_api.collection import Store
from catalog_api.crud.item_crud import load_item
from catalog_api.exceptions import DocumentExistsError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.item import LikeChangeResponse, LikesResponse
from catalog_api.utils import now_iso

# Create a child logger for this module
logger = get_child_logger("crud.like")


async def _state(store: Store, item_id: str, user_id: Optional[str]) -> LikesResponse:
    count = await store.likes.count(partition_key=item_id)
    liked = False
    if user_id:
        liked = await store.likes.get(user_id, partition_key=item_id) is not None
    return LikesResponse(count=count, liked=liked)


async def get_likes(store: Store, item_id: str, user: Optional[Dict[str, Any]]) -> LikesResponse:
    with tracer.start_as_current_span("get_likes") as span:
        span.set_attribute("item.id", item_id)
        await load_item(store, item_id)
        return await _state(store, item_id, str(user["id"]) if user else None)


async def like_item(store: Store, user: Dict[str, Any], item_id: str) -> LikeChangeResponse:
    """Insert the (item, user) like unless it already exists."""
    with tracer.start_as_current_span("like_item") as span:
        span.set_attribute("item.id", item_id)
        await load_item(store, item_id)
        user_id = str(user["id"])
        try:
            await store.likes.create(
                {"id": user_id, "itemId": item_id, "userId": user_id, "createdAt": now_iso()}
            )
            logger.info("Item liked", extra={"item_id": item_id, "user_id": user_id})
        except DocumentExistsError:
            span.set_attribute("like.existed", True)

        state = await _state(store, item_id, user_id)
        return LikeChangeResponse(count=state.count, liked=True)


async def unlike_item(store: Store, user: Dict[str, Any], item_id: str) -> LikeChangeResponse:
    """Remove the (item, user) like if present."""
    with tracer.start_as_current_span("unlike_item") as span:
        span.set_attribute("item.id", item_id)
        await load_item(store, item_id)
        user_id = str(user["id"])
        removed = await store.likes.delete(user_id, partition_key=item_id)
        span.set_attribute("like.removed", removed)
        if removed:
            logger.info("Item unliked", extra={"item_id": item_id, "user_id": user_id})

        state = await _state(store, item_id, user_id)
        return LikeChangeResponse(count=state.count, liked=False)
