from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path

from catalog_api.collection import Store, get_store
from catalog_api.crud.like_crud import get_likes, like_item, unlike_item
from catalog_api.identity import get_current_user, get_optional_user
from catalog_api.models.item import LikeChangeResponse, LikesResponse

router = APIRouter(prefix="/items/{item_id}", tags=["likes"])


@router.post("/like", response_model=LikeChangeResponse)
async def add_like(
    item_id: str = Path(..., description="The ID of the item"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await like_item(store, user, item_id)


@router.delete("/like", response_model=LikeChangeResponse)
async def remove_like(
    item_id: str = Path(..., description="The ID of the item"),
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await unlike_item(store, user, item_id)


@router.get("/likes", response_model=LikesResponse)
async def read_likes(
    item_id: str = Path(..., description="The ID of the item"),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    store: Store = Depends(get_store),
):
    return await get_likes(store, item_id, user)
