from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from catalog_api.collection import Store, get_store
from catalog_api.crud.search_crud import all_tags, search
from catalog_api.logging_config import tracer
from catalog_api.models.search import SearchResponse
from catalog_api.utils import to_int

router = APIRouter(tags=["search"])


@router.get("/search", response_model=SearchResponse, response_model_exclude_none=True)
async def run_search(
    q: Optional[str] = Query(None),
    type: Optional[str] = Query("all", description="all, inventories or items"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_search") as span:
        span.set_attribute("search.type", type or "all")
        return await search(store, q, type, page=to_int(page), limit=to_int(limit))


@router.get("/tags", response_model=List[str])
async def get_tags(store: Store = Depends(get_store)):
    return await all_tags(store)
