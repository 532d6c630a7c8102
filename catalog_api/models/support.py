from pydantic import BaseModel
from typing import Any, Dict, Literal, Optional


class TicketCreate(BaseModel):
    summary: str
    priority: Literal["High", "Average", "Low"]
    link: Optional[str] = None
    template: Optional[str] = None


class StoredFile(BaseModel):
    """
    Locator returned by an upload provider.
    """

    provider: str
    id: Optional[str] = None
    path: str
    url: Optional[str] = None


class TicketResponse(BaseModel):
    ok: bool = True
    file: StoredFile
    payload: Dict[str, Any]
