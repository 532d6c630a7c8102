from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response, status

from catalog_api import config
from catalog_api.collection import Store, get_store
from catalog_api.crud.user_crud import login, logout_all, register
from catalog_api.identity import get_current_user
from catalog_api.logging_config import tracer
from catalog_api.models.common import OkResponse
from catalog_api.models.user import LoginRequest, RegisterRequest, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=config.is_production(),
        max_age=config.AUTH_ACCESS_TTL_DAYS * 24 * 60 * 60,
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.AUTH_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=config.is_production(),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    response: Response,
    body: RegisterRequest = Body(...),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_register"):
        result = await register(store, body)
        _set_session_cookie(response, result.access_token)
        return result


@router.post("/login", response_model=TokenResponse)
async def login_user(
    response: Response,
    body: LoginRequest = Body(...),
    store: Store = Depends(get_store),
):
    with tracer.start_as_current_span("api_login"):
        result = await login(store, body)
        _set_session_cookie(response, result.access_token)
        return result


@router.post("/logout", response_model=OkResponse, response_model_exclude_none=True)
async def logout_user(response: Response):
    _clear_session_cookie(response)
    return OkResponse()


@router.post("/logout-all", response_model=OkResponse, response_model_exclude_none=True)
async def logout_everywhere(
    response: Response,
    user: Dict[str, Any] = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    await logout_all(store, user)
    _clear_session_cookie(response)
    return OkResponse()
