from datetime import datetime, timezone
from typing import Any, Dict, Optional

from catalog_api import config
from catalog_api.exceptions import BadRequestError
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.support import StoredFile, TicketCreate, TicketResponse
from catalog_api.uploads import Uploader

# Create a child logger for this module
logger = get_child_logger("crud.support")


def _reporter(user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not user:
        return {"id": None, "name": "Anonymous", "email": None}
    return {
        "id": str(user["id"]),
        "name": user.get("name") or user.get("email") or "Unknown",
        "email": user.get("email"),
    }


async def create_ticket(
    uploader: Uploader,
    user: Optional[Dict[str, Any]],
    body: TicketCreate,
    referer: Optional[str] = None,
) -> TicketResponse:
    """Serialise a support ticket to JSON and hand it to the upload provider."""
    summary = body.summary.strip()
    if not summary:
        raise BadRequestError("summary and priority are required")

    now = datetime.now(timezone.utc)
    payload = {
        "reportedBy": _reporter(user),
        "template": body.template or "",
        "link": body.link or referer or "",
        "priority": body.priority,
        "summary": summary,
        "admins": config.SUPPORT_ADMIN_EMAILS,
        "createdAt": now.isoformat(),
        "app": config.APP_NAME,
        "env": config.APP_ENV,
    }
    filename = f"ticket-{int(now.timestamp() * 1000)}.json"

    with tracer.start_as_current_span("create_support_ticket") as span:
        span.set_attribute("ticket.priority", body.priority)
        stored = await uploader.store(payload, filename)
        span.set_attribute("upload.provider", stored.get("provider", ""))
        logger.info(
            "Support ticket stored",
            extra={"provider": stored.get("provider"), "path": stored.get("path"), "priority": body.priority},
        )
        return TicketResponse(file=StoredFile(**stored), payload=payload)
