from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

MAX_POST_LENGTH = 5000


class PostCreate(BaseModel):
    text: Optional[str] = None


class PostAuthor(BaseModel):
    id: str = ""
    name: str = "User"
    avatar: str = ""


class PostResponse(BaseModel):
    """
    A discussion post as returned to clients and broadcast to the room.
    """

    id: str
    inventory_id: str = Field(alias="inventoryId")
    text: str
    created_at: str = Field(alias="createdAt")
    author: PostAuthor

    model_config = ConfigDict(populate_by_name=True)


class PostList(BaseModel):
    items: List[PostResponse]
    count: int
