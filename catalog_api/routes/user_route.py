from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from catalog_api.collection import Store, get_store
from catalog_api.crud.user_crud import get_user, search_users, set_role
from catalog_api.identity import get_current_user, require_admin
from catalog_api.models.user import (
    RoleChangeResponse,
    RoleRequest,
    UserEnvelope,
    UserResponse,
    UserSearchResponse,
)
from catalog_api.utils import to_int

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(user: Dict[str, Any] = Depends(get_current_user)):
    return UserResponse.from_user(user)


@router.get("/search", response_model=UserSearchResponse)
async def find_users(
    q: Optional[str] = Query(None, description="Text to search in email/name"),
    limit: Optional[str] = Query(None),
    _: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    return await search_users(store, q, to_int(limit))


@router.get("/{user_id}", response_model=UserEnvelope)
async def read_user(
    user_id: str = Path(..., description="The ID of the user"),
    _: Dict[str, Any] = Depends(require_admin),
    store: Store = Depends(get_store),
):
    return UserEnvelope(user=await get_user(store, user_id))


@router.put("/{user_id}/role", response_model=RoleChangeResponse)
async def change_role(
    user_id: str = Path(..., description="The ID of the user"),
    body: RoleRequest = Body(...),
    admin: Dict[str, Any] = Depends(require_admin),
    store: Store = Depends(get_store),
):
    return RoleChangeResponse(user=await set_role(store, admin, user_id, body.role))
