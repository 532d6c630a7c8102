from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional


class ItemCreate(BaseModel):
    """
    Fields a client can provide to create an item. ``title`` is a legacy alias of ``name``.
    """

    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    tags: Optional[List[Any]] = None
    fields: Optional[Dict[str, Any]] = None  # values keyed by the inventory's field keys

    model_config = ConfigDict(extra="ignore")


class ItemUpdate(ItemCreate):
    """
    Input model for updating an item with optimistic concurrency control.
    ``version`` must equal the stored version for the update to apply.
    """

    version: Optional[int] = None


class ItemResponse(BaseModel):
    """
    All item fields plus system-generated fields.
    """

    id: str
    inventory_id: str = Field(alias="inventoryId")
    name: str = ""
    description: str = ""
    image: str = ""
    tags: List[str] = Field(default_factory=list)
    fields: Dict[str, Any] = Field(default_factory=dict)
    custom_id: Optional[str] = Field(default=None, alias="customId")
    version: int = 1  # optimistic concurrency counter
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def model_validate(cls, obj, *args, **kwargs):
        if isinstance(obj, dict):
            obj = dict(obj)
            if not obj.get("name") and obj.get("title"):
                obj["name"] = obj["title"]
            for key in ("name", "description", "image"):
                if obj.get(key) is None:
                    obj.pop(key, None)
            if not isinstance(obj.get("fields"), dict):
                obj["fields"] = {}
            if not isinstance(obj.get("tags"), list):
                obj["tags"] = []
            obj["inventoryId"] = str(obj.get("inventoryId"))
        return super().model_validate(obj, *args, **kwargs)


class ItemList(BaseModel):
    page: int
    limit: int
    total: int
    items: List[ItemResponse]


class LikesResponse(BaseModel):
    count: int
    liked: bool


class LikeChangeResponse(LikesResponse):
    ok: bool = True
