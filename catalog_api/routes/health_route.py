from fastapi import APIRouter

from catalog_api import config

router = APIRouter(tags=["health"])


@router.get("/")
@router.get("/health")
@router.get("/api")
@router.get("/api/health")
async def health():
    return {"ok": True, "app": config.APP_NAME}
