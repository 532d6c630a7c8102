"""
Rendering of custom item identifiers from an inventory's ``customIdFormat``.

Sequence elements draw from counters in the ``counters`` container, keyed by
scope and element index: ``inventory:<inventoryId>:<index>`` (default scope)
or ``global:<index>``.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from catalog_api.collection import Store
from catalog_api.exceptions import DocumentExistsError, DocumentNotFoundError
from catalog_api.logging_config import get_child_logger

logger = get_child_logger("custom_id")

DEFAULT_SEPARATOR = "-"

_DATE_TOKENS = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
_DATE_TOKEN_RE = re.compile("|".join(sorted(_DATE_TOKENS, key=len, reverse=True)))


def format_date(fmt: str, moment: datetime) -> str:
    """``YYYYMMDD`` -> ``20240131``. Characters other than tokens are kept."""
    return _DATE_TOKEN_RE.sub(lambda m: moment.strftime(_DATE_TOKENS[m.group(0)]), fmt)


def counter_id(inventory_id: str, index: int, scope: Optional[str]) -> str:
    if scope == "global":
        return f"global:{index}"
    return f"inventory:{inventory_id}:{index}"


async def next_sequence(store: Store, key: str) -> int:
    """Atomically increment and return the counter ``key``, starting at 1."""
    try:
        doc = await store.counters.patch(key, increment={"seq": 1})
        return int(doc["seq"])
    except DocumentNotFoundError:
        pass
    try:
        await store.counters.create({"id": key, "seq": 1})
        return 1
    except DocumentExistsError:
        # lost the creation race; the counter exists now
        doc = await store.counters.patch(key, increment={"seq": 1})
        return int(doc["seq"])


def is_enabled(cfg: Optional[Dict[str, Any]]) -> bool:
    if not isinstance(cfg, dict):
        return False
    if cfg.get("enabled") is False:
        return False
    return bool(cfg.get("elements"))


async def render_custom_id(
    store: Store,
    inventory: Dict[str, Any],
    item_fields: Dict[str, Any],
    moment: Optional[datetime] = None,
) -> Optional[str]:
    """
    Build the custom ID for a new item, or None when the inventory has no
    enabled format.
    """
    cfg = inventory.get("customIdFormat")
    if not is_enabled(cfg):
        return None

    moment = moment or datetime.now(timezone.utc)
    separator = cfg.get("separator")
    if separator is None:
        separator = DEFAULT_SEPARATOR

    parts = []
    for index, element in enumerate(cfg["elements"]):
        kind = element.get("type")
        if kind == "text":
            parts.append(str(element.get("value", "")))
        elif kind == "date":
            parts.append(format_date(element.get("format") or "", moment))
        elif kind == "seq":
            key = counter_id(str(inventory["id"]), index, element.get("scope"))
            number = await next_sequence(store, key)
            pad = int(element.get("pad") or 0)
            parts.append(str(number).zfill(pad))
        elif kind == "field":
            value = item_fields.get(element.get("key"))
            parts.append("" if value is None else str(value))
        else:
            logger.warning(
                "Skipping unsupported custom id element",
                extra={"inventory_id": inventory.get("id"), "type": kind},
            )

    return separator.join(parts)
