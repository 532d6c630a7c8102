from pydantic import BaseModel, Field, ConfigDict
from typing import Any, List, Optional

from catalog_api.models.common import UserProfile
from catalog_api.models.inventory import InventorySummary


class AccessChange(BaseModel):
    """
    Grant change for one user, identified by id or email.
    A missing/null ``accessType`` removes the grant.
    """

    user_id: Optional[str] = Field(default=None, alias="userId")
    email: Optional[str] = None
    access_type: Optional[str] = Field(default=None, alias="accessType")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AccessUpdate(BaseModel):
    changes: List[AccessChange] = Field(default_factory=list)
    remove: List[Any] = Field(default_factory=list)


class GrantUser(UserProfile):
    blocked: bool = False


class GrantEntry(BaseModel):
    access_type: str = Field(alias="accessType")
    user: GrantUser

    model_config = ConfigDict(populate_by_name=True)


class AccessListResponse(BaseModel):
    owner: Optional[GrantUser] = None
    items: List[GrantEntry]


class MyAccessEntry(BaseModel):
    inventory: InventorySummary
    access_type: str = Field(alias="accessType")

    model_config = ConfigDict(populate_by_name=True)


class MyAccessResponse(BaseModel):
    items: List[MyAccessEntry]
