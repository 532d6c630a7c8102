from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    """
    Public subset of a user, embedded in inventories, posts and grants.
    """

    id: str
    name: str = ""
    email: str = ""
    avatar: str = ""

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_user(cls, user: Optional[dict]) -> Optional["UserProfile"]:
        if not user:
            return None
        return cls(
            id=str(user["id"]),
            name=user.get("name") or "",
            email=user.get("email") or "",
            avatar=user.get("avatar") or "",
        )


class OkResponse(BaseModel):
    ok: bool = True
    id: Optional[str] = None
    detail: Optional[Any] = None
