from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional, Union

from catalog_api.models.common import UserProfile
from catalog_api.models.schema import CustomIdFormat, FieldList


class InventoryCreate(BaseModel):
    """
    Fields a client can provide to create an inventory.
    ``name`` and ``cover`` are legacy aliases of ``title`` and ``image``.
    """

    title: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    cover: Optional[str] = None
    tags: Optional[List[Any]] = None
    is_public: Optional[bool] = Field(default=None, alias="isPublic")
    fields: Optional[FieldList] = None
    custom_id_format: Optional[CustomIdFormat] = Field(default=None, alias="customIdFormat")
    access: Optional[Union[Dict[str, Any], List[Any]]] = None  # legacy embedded grants
    stats: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InventoryUpdate(InventoryCreate):
    """
    Partial update: only keys present in the request body are modified.
    """


class InventorySummary(BaseModel):
    """
    Inventory as shown in lists.
    """

    id: str
    title: str = ""
    description: str = ""
    category: str = ""
    image: str = ""
    tags: List[str] = Field(default_factory=list)
    owner_id: Optional[str] = Field(default=None, alias="ownerId")
    owner: Optional[UserProfile] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def model_validate(cls, obj, *args, **kwargs):
        """
        Fill canonical keys from legacy ones (name -> title, cover -> image).
        """
        if isinstance(obj, dict):
            obj = dict(obj)
            if not obj.get("title") and obj.get("name"):
                obj["title"] = obj["name"]
            if not obj.get("image") and obj.get("cover"):
                obj["image"] = obj["cover"]
            for key in ("title", "description", "category", "image"):
                if obj.get(key) is None:
                    obj.pop(key, None)
            if obj.get("ownerId") is not None:
                obj["ownerId"] = str(obj["ownerId"])
            if not isinstance(obj.get("tags"), list):
                obj.pop("tags", None)
        return super().model_validate(obj, *args, **kwargs)


class InventoryResponse(InventorySummary):
    """
    Full inventory, including its schema and custom-ID format.
    """

    is_public: bool = Field(default=False, alias="isPublic")
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    custom_id_format: Optional[Dict[str, Any]] = Field(default=None, alias="customIdFormat")
    access: Union[Dict[str, Any], List[Any]] = Field(default_factory=dict)
    stats: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def model_validate(cls, obj, *args, **kwargs):
        if isinstance(obj, dict):
            obj = dict(obj)
            for key, default in (("fields", list), ("stats", dict)):
                if not isinstance(obj.get(key), default):
                    obj[key] = default()
            if not isinstance(obj.get("access"), (dict, list)):
                obj["access"] = {}
            obj["isPublic"] = bool(obj.get("isPublic"))
        return super().model_validate(obj, *args, **kwargs)


class InventoryList(BaseModel):
    page: int
    limit: int
    total: int
    items: List[InventorySummary]


class FieldsBody(BaseModel):
    fields: FieldList


class FieldsResponse(BaseModel):
    fields: List[Dict[str, Any]]


class CustomIdFormatBody(BaseModel):
    custom_id_format: Optional[CustomIdFormat] = Field(default=None, alias="customIdFormat")

    model_config = ConfigDict(populate_by_name=True)


class CustomIdFormatResponse(BaseModel):
    custom_id_format: Optional[Dict[str, Any]] = Field(default=None, alias="customIdFormat")

    model_config = ConfigDict(populate_by_name=True)


class TopInventory(InventorySummary):
    items_count: int = Field(default=0, alias="itemsCount")

    @classmethod
    def model_validate(cls, obj, *args, **kwargs):
        if isinstance(obj, dict):
            obj = dict(obj)
            obj.setdefault("itemsCount", (obj.get("stats") or {}).get("itemsCount", 0))
        return super().model_validate(obj, *args, **kwargs)
