from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from catalog_api.collection import Store, get_store
from catalog_api.crud.user_crud import list_users, set_blocked, set_role
from catalog_api.identity import require_admin
from catalog_api.logging_config import tracer
from catalog_api.models.user import AdminFlagRequest, BlockRequest, UserList, UserResponse
from catalog_api.utils import to_int

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=UserList)
async def get_users(
    q: Optional[str] = Query(None, description="Text to search in email/name"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    _: Dict[str, Any] = Depends(require_admin),
    store: Store = Depends(get_store),
):
    return await list_users(store, q=q, page=to_int(page), limit=to_int(limit))


@router.patch("/users/{user_id}/block", response_model=UserResponse)
async def block_user(
    user_id: str = Path(..., description="The ID of the user"),
    body: BlockRequest = Body(...),
    admin: Dict[str, Any] = Depends(require_admin),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_block_user") as span:
        span.set_attribute("user.id", user_id)
        return await set_blocked(store, admin, user_id, body.blocked)


@router.patch("/users/{user_id}/admin", response_model=UserResponse)
async def set_admin_flag(
    user_id: str = Path(..., description="The ID of the user"),
    body: AdminFlagRequest = Body(...),
    admin: Dict[str, Any] = Depends(require_admin),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_set_admin_flag") as span:
        span.set_attribute("user.id", user_id)
        return await set_role(store, admin, user_id, "admin" if body.is_admin else "user")
