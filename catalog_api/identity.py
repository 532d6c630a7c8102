"""Turns request credentials into a user document.

Two paths: ``identify`` (soft, never raises, anonymous on any failure) and
``authenticate`` (hard, raises Unauthorized/Forbidden).
"""
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request

from catalog_api import config
from catalog_api.collection import Store, get_store
from catalog_api.exceptions import ApplicationError, ForbiddenError, UnauthorizedError
from catalog_api.logging_config import get_child_logger
from catalog_api.security import decode_token, is_admin
from catalog_api.utils import to_int

logger = get_child_logger("identity")


def extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(config.AUTH_COOKIE_NAME) or None


async def _load_user(store: Store, token: str) -> Dict[str, Any]:
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    user = await store.users.get(str(user_id))
    if not user:
        raise UnauthorizedError("Unknown user")

    # tokenVersion is bumped on global logout / credential rotation
    stored = to_int(user.get("tokenVersion") or 0)
    if stored is None or stored != to_int(payload.get("tv") or 0):
        raise UnauthorizedError("Token revoked")
    return user


async def authenticate(request: Request, store: Store) -> Dict[str, Any]:
    token = extract_token(request)
    if not token:
        raise UnauthorizedError()
    user = await _load_user(store, token)
    if user.get("blocked"):
        raise ForbiddenError("User is blocked")
    return user


async def identify(request: Request, store: Store) -> Optional[Dict[str, Any]]:
    token = extract_token(request)
    if not token:
        return None
    try:
        user = await _load_user(store, token)
    except ApplicationError as e:
        logger.debug("Soft auth degraded to anonymous", extra={"reason": str(e)})
        return None
    if user.get("blocked"):
        return None
    return user


async def get_current_user(request: Request, store: Store = Depends(get_store)) -> Dict[str, Any]:
    return await authenticate(request, store)


async def get_optional_user(
    request: Request, store: Store = Depends(get_store)
) -> Optional[Dict[str, Any]]:
    return await identify(request, store)


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        raise ForbiddenError()
    return user
