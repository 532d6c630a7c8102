from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Path, Query, status

from catalog_api.collection import Store, get_store
from catalog_api.crud.discussion_crud import create_post, list_posts
from catalog_api.identity import get_current_user
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.discussion import PostCreate, PostList, PostResponse
from catalog_api.realtime import DISCUSSION_EVENT, Broadcaster, get_broadcaster
from catalog_api.utils import to_int

# Create a child logger for this module
logger = get_child_logger("routes.discussion")

router = APIRouter(prefix="/inventories/{inventory_id}/discussion", tags=["discussion"])


@router.get("", response_model=PostList)
async def get_posts(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    limit: Optional[str] = Query(None, description="1..500, default 200"),
    after: Optional[str] = Query(None, description="Only posts created after this ISO timestamp"),
    store: Store = Depends(get_store),
):
    return await list_posts(store, inventory_id, limit=to_int(limit), after=after)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def add_post(
    background_tasks: BackgroundTasks,
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: PostCreate = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("api_create_post") as span:
        span.set_attribute("inventory.id", inventory_id)
        post = await create_post(store, user, inventory_id, body)
        background_tasks.add_task(
            broadcaster.publish, inventory_id, DISCUSSION_EVENT, post.model_dump(by_alias=True)
        )
        logger.info("Queued discussion broadcast", extra={"inventory_id": inventory_id, "post_id": post.id})
        return post
