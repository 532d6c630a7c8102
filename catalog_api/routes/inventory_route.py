from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status

from catalog_api.collection import Store, get_store
from catalog_api.crud.inventory_crud import (
    create_inventory,
    delete_inventory,
    get_inventory,
    list_inventories,
    update_inventory,
)
from catalog_api.identity import authenticate, get_current_user, get_optional_user
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.common import OkResponse
from catalog_api.models.inventory import (
    InventoryCreate,
    InventoryList,
    InventoryResponse,
    InventoryUpdate,
)
from catalog_api.utils import to_int

# Create a child logger for this module
logger = get_child_logger("routes.inventory")

router = APIRouter(prefix="/inventories", tags=["inventories"])


@router.get("", response_model=InventoryList)
async def get_inventories(
    request: Request,
    owner: Optional[str] = Query(None, description="'me' or an owner's user id"),
    q: Optional[str] = Query(None, description="Text to search in title/description"),
    tag: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    access: Optional[str] = Query(None, description="'write' or 'read'"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_get_inventories") as span:
        if owner == "me" or access in ("write", "read"):
            # these filters need a caller; blocked users are refused, not anonymous
            user = await authenticate(request, store)
        span.set_attribute("authenticated", user is not None)
        logger.info(
            "Handling GET /inventories request",
            extra={"owner": owner, "tag": tag, "category": category, "access": access},
        )
        return await list_inventories(
            store,
            user,
            owner=owner,
            q=q,
            tag=tag,
            category=category,
            access=access if access in ("write", "read") else None,
            page=to_int(page),
            limit=to_int(limit),
        )


@router.post("", response_model=InventoryResponse, status_code=status.HTTP_201_CREATED)
async def add_new_inventory(
    body: InventoryCreate = Body(..., description="Inventory to create"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_create_inventory"):
        return await create_inventory(store, user, body)


@router.get("/{inventory_id}", response_model=InventoryResponse)
async def get_inventory_by_id(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_get_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        return await get_inventory(store, inventory_id)


@router.put("/{inventory_id}", response_model=InventoryResponse)
async def update_inventory_by_id(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: InventoryUpdate = Body(..., description="Fields to change"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_update_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        return await update_inventory(store, user, inventory_id, body)


@router.delete("/{inventory_id}", response_model=OkResponse, response_model_exclude_none=True)
async def delete_inventory_by_id(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_delete_inventory") as span:
        span.set_attribute("inventory.id", inventory_id)
        await delete_inventory(store, user, inventory_id)
        return OkResponse(id=inventory_id)
