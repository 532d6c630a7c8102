from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from catalog_api.collection import Store, get_store
from catalog_api.crud.access_crud import get_access, my_access, update_access
from catalog_api.identity import get_current_user
from catalog_api.logging_config import tracer
from catalog_api.models.access import AccessListResponse, AccessUpdate, MyAccessResponse

router = APIRouter(tags=["access"])


@router.get("/inventories/{inventory_id}/access", response_model=AccessListResponse)
async def read_access(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await get_access(store, user, inventory_id)


@router.put("/inventories/{inventory_id}/access", response_model=AccessListResponse)
async def change_access(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: AccessUpdate = Body(..., description="Grant changes and removals"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_update_access") as span:
        span.set_attribute("inventory.id", inventory_id)
        span.set_attribute("changes.count", len(body.changes))
        return await update_access(store, user, inventory_id, body)


@router.get("/access/my", response_model=MyAccessResponse)
async def read_my_access(
    type: Optional[str] = Query("write", description="'write' or 'read' (read includes write)"),
    exclude_owner: Optional[str] = Query("false", alias="excludeOwner"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await my_access(
        store,
        user,
        access_type=(type or "write").lower(),
        exclude_owner=(exclude_owner or "").lower() == "true",
    )
