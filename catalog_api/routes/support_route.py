from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from catalog_api.crud.support_crud import create_ticket
from catalog_api.identity import get_optional_user
from catalog_api.models.support import TicketCreate, TicketResponse
from catalog_api.uploads import Uploader, get_uploader

router = APIRouter(prefix="/support", tags=["support"])


@router.post("/tickets", response_model=TicketResponse)
async def submit_ticket(
    request: Request,
    body: TicketCreate = Body(...),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    uploader: Uploader = Depends(get_uploader),
):
    return await create_ticket(uploader, user, body, referer=request.headers.get("referer"))
