from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    avatar: str = ""
    role: str = "user"
    is_admin: bool = Field(default=False, alias="isAdmin")
    blocked: bool = False
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_user(cls, user: dict) -> "UserResponse":
        role = user.get("role") if user.get("role") in ("user", "admin") else (
            "admin" if user.get("isAdmin") else "user"
        )
        return cls(
            id=str(user["id"]),
            name=user.get("name") or "",
            email=user.get("email") or "",
            avatar=user.get("avatar") or "",
            role=role,
            is_admin=role == "admin",
            blocked=bool(user.get("blocked") or user.get("isBlocked")),
            created_at=user.get("createdAt"),
        )


class TokenResponse(BaseModel):
    access_token: str = Field(alias="accessToken")
    user: UserResponse

    model_config = ConfigDict(populate_by_name=True)


class UserList(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    limit: int


class UserSearchResponse(BaseModel):
    items: List[UserResponse]


class BlockRequest(BaseModel):
    blocked: bool = False


class AdminFlagRequest(BaseModel):
    is_admin: bool = Field(default=False, alias="isAdmin")

    model_config = ConfigDict(populate_by_name=True)


class RoleRequest(BaseModel):
    role: Literal["user", "admin"]


class UserEnvelope(BaseModel):
    user: UserResponse


class RoleChangeResponse(UserEnvelope):
    ok: bool = True
