import re
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple

from catalog_api.exceptions import BadRequestError

_LEGACY_ID = re.compile(r"^[0-9a-fA-F]{24}$")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    """UTC timestamp that sorts lexicographically in time order."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def is_valid_id(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if _LEGACY_ID.match(value):
        return True
    try:
        uuid.UUID(value)
        return True
    except ValueError:
        return False


def parse_id(value: Any, what: str = "id") -> str:
    """Validate a document id (uuid, or a 24-hex id from migrated data)."""
    if not is_valid_id(value):
        raise BadRequestError(f"Invalid {what}")
    return value


def page_window(page: Optional[int], limit: Optional[int],
                default: int = DEFAULT_PAGE_SIZE, maximum: int = MAX_PAGE_SIZE) -> Tuple[int, int]:
    """Clamp pagination params: page >= 1, 1 <= limit <= maximum."""
    pg = page if page and page > 0 else 1
    lim = limit if limit and limit > 0 else default
    return pg, min(lim, maximum)


def normalize_tags(tags: Any) -> List[str]:
    """Trim, lowercase and dedupe tags, keeping first-seen order."""
    if not isinstance(tags, (list, tuple)):
        return []
    seen = []
    for tag in tags:
        value = str(tag if tag is not None else "").strip().lower()
        if value and value not in seen:
            seen.append(value)
    return seen


def clean_str(value: Any) -> str:
    return str(value if value is not None else "").strip()


def unique(values: Iterable[Any]) -> List[Any]:
    out = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


def to_int(value: Any) -> Optional[int]:
    """Lenient query-string integer: None when absent or not a number."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None
