from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from catalog_api.collection import Store, get_store
from catalog_api.crud.item_crud import create_item, delete_item, get_item, list_items, update_item
from catalog_api.identity import get_current_user
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.common import OkResponse
from catalog_api.models.item import ItemCreate, ItemList, ItemResponse, ItemUpdate
from catalog_api.utils import to_int

# Create a child logger for this module
logger = get_child_logger("routes.item")

router = APIRouter(tags=["items"])


@router.get("/inventories/{inventory_id}/items", response_model=ItemList)
async def get_items(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    q: Optional[str] = Query(None, description="Text to search in name/description"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_get_items") as span:
        span.set_attribute("inventory.id", inventory_id)
        return await list_items(store, inventory_id, q=q, page=to_int(page), limit=to_int(limit))


@router.post(
    "/inventories/{inventory_id}/items",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_new_item(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: ItemCreate = Body(..., description="Item to create"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_create_item") as span:
        span.set_attribute("inventory.id", inventory_id)
        logger.info("Handling POST item request", extra={"inventory_id": inventory_id})
        return await create_item(store, user, inventory_id, body)


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item_by_id(
    item_id: str = Path(..., description="The ID of the item"),
    store: Store = Depends(get_store),
):
    return await get_item(store, item_id)


@router.put("/items/{item_id}", response_model=ItemResponse)
async def update_item_by_id(
    item_id: str = Path(..., description="The ID of the item"),
    body: ItemUpdate = Body(..., description="Fields to change plus the version they were read at"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_update_item") as span:
        span.set_attribute("item.id", item_id)
        return await update_item(store, user, item_id, body)


@router.delete("/items/{item_id}", response_model=OkResponse, response_model_exclude_none=True)
async def delete_item_by_id(
    item_id: str = Path(..., description="The ID of the item"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_delete_item") as span:
        span.set_attribute("item.id", item_id)
        await delete_item(store, user, item_id)
        return OkResponse(id=item_id)
