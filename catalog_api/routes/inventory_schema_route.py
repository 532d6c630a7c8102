from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Path

from catalog_api.collection import Store, get_store
from catalog_api.crud.inventory_crud import (
    get_custom_id_format,
    get_fields,
    put_custom_id_format,
    put_fields,
)
from catalog_api.identity import get_current_user
from catalog_api.models.inventory import (
    CustomIdFormatBody,
    CustomIdFormatResponse,
    FieldsBody,
    FieldsResponse,
)

router = APIRouter(prefix="/inventories/{inventory_id}", tags=["inventory schema"])


@router.get("/fields", response_model=FieldsResponse)
async def read_fields(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    store: Store = Depends(get_store),
):
    return await get_fields(store, inventory_id)


@router.put("/fields", response_model=FieldsResponse)
async def replace_fields(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: FieldsBody = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await put_fields(store, user, inventory_id, body.fields)


@router.get("/customIdFormat", response_model=CustomIdFormatResponse)
async def read_custom_id_format(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    store: Store = Depends(get_store),
):
    return await get_custom_id_format(store, inventory_id)


@router.put("/customIdFormat", response_model=CustomIdFormatResponse)
async def replace_custom_id_format(
    inventory_id: str = Path(..., description="The ID of the inventory"),
    body: CustomIdFormatBody = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await put_custom_id_format(store, user, inventory_id, body.custom_id_format)
