from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from catalog_api.collection import Store, get_store
from catalog_api.crud.search_crud import latest_inventories, top_inventories
from catalog_api.models.inventory import InventorySummary, TopInventory
from catalog_api.utils import to_int

# Registered ahead of the inventory router so these paths win over /inventories/{id}.
router = APIRouter(prefix="/inventories", tags=["home"])


@router.get("/latest", response_model=List[InventorySummary])
async def get_latest(
    limit: Optional[str] = Query(None, description="At most 50, default 10"),
    store: Store = Depends(get_store),
):
    return await latest_inventories(store, to_int(limit))


@router.get("/top", response_model=List[TopInventory])
async def get_top(store: Store = Depends(get_store)):
    return await top_inventories(store)
