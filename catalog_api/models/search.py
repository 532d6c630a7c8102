from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

from catalog_api.models.inventory import InventorySummary


class ItemHit(BaseModel):
    id: str
    inventory_id: Optional[str] = Field(default=None, alias="inventoryId")
    name: str = ""
    description: str = ""
    image: str = ""
    tags: List[str] = Field(default_factory=list)
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InventoryHits(BaseModel):
    total: int
    items: List[InventorySummary]


class ItemHits(BaseModel):
    total: int
    items: List[ItemHit]


class SearchResponse(BaseModel):
    q: str
    type: str
    page: int
    limit: int
    inventories: Optional[InventoryHits] = None
    items: Optional[ItemHits] = None
