import hashlib
from typing import Any, Dict, List, Optional

from catalog_api.collection import Store
from catalog_api.exceptions import (
    ApplicationError,
    BadRequestError,
    ConflictError,
    DocumentExistsError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from catalog_api.logging_config import get_child_logger, tracer
from catalog_api.models.user import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserList,
    UserResponse,
    UserSearchResponse,
)
from catalog_api.query import Eq, OrderBy, TextSearch
from catalog_api.security import (
    create_access_token,
    hash_password,
    is_password_hash,
    password_needs_rehash,
    verify_legacy_plaintext,
    verify_password,
)
from catalog_api.utils import clean_str, new_id, now_iso, page_window, parse_id

# Create a child logger for this module
logger = get_child_logger("crud.user")

MIN_PASSWORD_LENGTH = 6
SEARCH_DEFAULT_LIMIT = 10
SEARCH_MAX_LIMIT = 25
NEWEST_FIRST = (OrderBy("createdAt", descending=True), OrderBy("id", descending=True))


def normalize_email(email: Optional[str]) -> str:
    return clean_str(email).lower()


async def find_by_email(store: Store, email: str) -> Optional[Dict[str, Any]]:
    rows = await store.users.query([Eq("email", email)], limit=1)
    return rows[0] if rows else None


async def load_user(store: Store, user_id: str) -> Dict[str, Any]:
    parse_id(user_id)
    user = await store.users.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def email_claim_id(email: str) -> str:
    # ids may not contain / \ ? or #, all legal in an address
    return "email:" + hashlib.sha256(email.encode("utf-8")).hexdigest()


async def _claim_email(store: Store, email: str, user_id: str) -> None:
    """
    Reserve ``email`` with a document keyed by the address itself, so two
    concurrent registrations cannot both create an account for it.
    """
    try:
        await store.counters.create({"id": email_claim_id(email), "userId": user_id, "createdAt": now_iso()})
    except DocumentExistsError:
        raise ConflictError("Email already registered")


async def register(store: Store, body: RegisterRequest) -> TokenResponse:
    """
    Create a local account and sign it in.

    Raises:
        BadRequestError: If email or password is missing or too short
        ConflictError: If the email is already registered
    """
    with tracer.start_as_current_span("register_user") as span:
        email = normalize_email(body.email)
        if not email or "@" not in email:
            raise BadRequestError("A valid email is required")
        if len(body.password or "") < MIN_PASSWORD_LENGTH:
            raise BadRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if await find_by_email(store, email):
            raise ConflictError("Email already registered")

        doc = {
            "id": new_id(),
            "email": email,
            "name": clean_str(body.name) or email.split("@")[0],
            "avatar": "",
            "role": "user",
            "blocked": False,
            "passwordHash": hash_password(body.password),
            "tokenVersion": 0,
            "createdAt": now_iso(),
        }
        await _claim_email(store, email, doc["id"])
        try:
            created = await store.users.create(doc)
        except ApplicationError:
            await store.counters.delete(email_claim_id(email))
            raise

        span.set_attribute("user.id", doc["id"])
        logger.info("User registered", extra={"user_id": doc["id"]})
        return TokenResponse(access_token=create_access_token(created), user=UserResponse.from_user(created))


async def _check_password(store: Store, user: Dict[str, Any], password: str) -> bool:
    """
    Verify ``password`` and upgrade how it is stored when needed.

    Accounts that only carry a legacy ``password`` field (a hash, or
    plaintext from older imports) are moved to ``passwordHash`` on the first
    successful login.
    """
    stored_hash = user.get("passwordHash")
    legacy = user.get("password")

    if stored_hash:
        if not verify_password(password, stored_hash):
            return False
        if password_needs_rehash(stored_hash):
            await store.users.patch(user["id"], set_fields={"passwordHash": hash_password(password)})
        return True

    if not legacy:
        return False
    if is_password_hash(legacy):
        ok = verify_password(password, legacy)
    else:
        ok = verify_legacy_plaintext(password, str(legacy))
    if ok:
        await store.users.patch(
            user["id"], set_fields={"passwordHash": hash_password(password)}, remove=("password",)
        )
        logger.info("Legacy password migrated", extra={"user_id": user["id"]})
    return ok


async def login(store: Store, body: LoginRequest) -> TokenResponse:
    """
    Raises:
        BadRequestError: If email or password is missing
        UnauthorizedError: If the credentials don't match
        ForbiddenError: If the account is blocked
    """
    with tracer.start_as_current_span("login_user") as span:
        email = normalize_email(body.email)
        if not email or not body.password:
            raise BadRequestError("Email and password are required")

        user = await find_by_email(store, email)
        if not user:
            raise UnauthorizedError("Invalid credentials")
        if user.get("blocked"):
            raise ForbiddenError("User is blocked")
        if not await _check_password(store, user, body.password):
            logger.warning("Failed login", extra={"user_id": user["id"]})
            raise UnauthorizedError("Invalid credentials")

        span.set_attribute("user.id", str(user["id"]))
        logger.info("User logged in", extra={"user_id": user["id"]})
        return TokenResponse(access_token=create_access_token(user), user=UserResponse.from_user(user))


async def logout_all(store: Store, user: Dict[str, Any]) -> None:
    """Invalidate every token issued to ``user`` by bumping its token version."""
    await store.users.patch(str(user["id"]), increment={"tokenVersion": 1})
    logger.info("All sessions revoked", extra={"user_id": user["id"]})


async def search_users(store: Store, q: Optional[str], limit: Optional[int] = None) -> UserSearchResponse:
    lim = min(limit if limit and limit > 0 else SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT)
    text = clean_str(q)
    filters: List[Any] = [TextSearch(("email", "name"), text)] if text else []
    rows = await store.users.query(filters, order_by=NEWEST_FIRST, limit=lim)
    return UserSearchResponse(items=[UserResponse.from_user(u) for u in rows])


async def list_users(
    store: Store, q: Optional[str] = None, page: Optional[int] = None, limit: Optional[int] = None
) -> UserList:
    pg, lim = page_window(page, limit)
    with tracer.start_as_current_span("list_users") as span:
        text = clean_str(q)
        filters: List[Any] = [TextSearch(("email", "name"), text)] if text else []
        total = await store.users.count(filters)
        rows = await store.users.query(filters, order_by=NEWEST_FIRST, offset=(pg - 1) * lim, limit=lim)
        span.set_attribute("users.count", len(rows))
        return UserList(items=[UserResponse.from_user(u) for u in rows], total=total, page=pg, limit=lim)


async def get_user(store: Store, user_id: str) -> UserResponse:
    return UserResponse.from_user(await load_user(store, user_id))


async def set_blocked(store: Store, admin: Dict[str, Any], user_id: str, blocked: bool) -> UserResponse:
    await load_user(store, user_id)
    saved = await store.users.patch(user_id, set_fields={"blocked": bool(blocked)})
    logger.info(
        "User block flag changed",
        extra={"user_id": user_id, "blocked": bool(blocked), "admin_id": admin.get("id")},
    )
    return UserResponse.from_user(saved)


async def set_role(store: Store, admin: Dict[str, Any], user_id: str, role: str) -> UserResponse:
    """Set the global role; ``isAdmin`` is kept in step for older readers."""
    await load_user(store, user_id)
    saved = await store.users.patch(
        user_id, set_fields={"role": role, "isAdmin": role == "admin"}
    )
    logger.info(
        "User role changed",
        extra={"user_id": user_id, "role": role, "admin_id": admin.get("id")},
    )
    return UserResponse.from_user(saved)
