import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from catalog_api import config
from catalog_api.utils import to_int

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def verify_password(raw: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(raw, hashed)
    except ValueError:
        # not a recognised hash
        return False


def is_password_hash(value: str) -> bool:
    return pwd_context.identify(value, required=False) is not None


def password_needs_rehash(hashed: str) -> bool:
    return pwd_context.needs_update(hashed)


def verify_legacy_plaintext(raw: str, stored: str) -> bool:
    return secrets.compare_digest(raw.encode("utf-8"), stored.encode("utf-8"))


def create_access_token(user: Dict[str, Any]) -> str:
    payload: Dict[str, Any] = {
        "sub": str(user["id"]),
        "tv": to_int(user.get("tokenVersion") or 0) or 0,
        "role": user_role(user),
        "exp": datetime.now(timezone.utc) + timedelta(days=config.AUTH_ACCESS_TTL_DAYS),
    }
    return jwt.encode(payload, config.AUTH_SECRET_KEY, algorithm=config.AUTH_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry. Raises ``jwt.InvalidTokenError``."""
    return jwt.decode(token, config.AUTH_SECRET_KEY, algorithms=[config.AUTH_ALGORITHM])


def user_role(user: Dict[str, Any]) -> str:
    if user.get("role") in ("user", "admin"):
        return user["role"]
    return "admin" if user.get("isAdmin") else "user"


def is_admin(user: Any) -> bool:
    return bool(user) and (user.get("role") == "admin" or bool(user.get("isAdmin")))
