"""
Upload providers for support tickets.

One capability, ``store(payload, filename) -> locator``; the implementation is
chosen at process start from ``UPLOAD_PROVIDER``.
"""
import json
from typing import Any, Dict, Optional, Protocol
from urllib.parse import quote

import httpx

from catalog_api import config
from catalog_api.exceptions import UploadError
from catalog_api.logging_config import get_child_logger

logger = get_child_logger("uploads")


class Uploader(Protocol):
    async def store(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        ...


def _normalize_folder(folder: str) -> str:
    folder = folder.strip()
    if not folder.startswith("/"):
        folder = "/" + folder
    return folder.rstrip("/")


class _HttpUploader:
    provider = ""

    async def _upload(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        raise NotImplementedError

    async def store(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        try:
            return await self._upload(payload, filename)
        except httpx.HTTPError as e:
            logger.error(
                "Upload request failed",
                extra={"provider": self.provider, "filename": filename, "error": str(e)},
            )
            raise UploadError(f"{self.provider} upload failed: {e}") from e


class DropboxUploader(_HttpUploader):
    provider = "dropbox"
    content_url = "https://content.dropboxapi.com/2"
    api_url = "https://api.dropboxapi.com/2"

    def __init__(self, token: Optional[str], folder: str, timeout: float = 30.0, transport=None):
        self.token = token
        self.folder = _normalize_folder(folder)
        self.timeout = timeout
        self.transport = transport

    def _headers(self, **extra) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", **extra}

    async def _ensure_folder(self, client: httpx.AsyncClient) -> None:
        res = await client.post(
            f"{self.api_url}/files/get_metadata",
            headers=self._headers(),
            json={"path": self.folder, "include_deleted": False},
        )
        if res.status_code == 200:
            return
        if res.status_code == 409 and "path/not_found" in res.text:
            created = await client.post(
                f"{self.api_url}/files/create_folder_v2",
                headers=self._headers(),
                json={"path": self.folder, "autorename": False},
            )
            if created.status_code != 200:
                raise UploadError(f"Dropbox create_folder_v2 failed: {created.status_code} {created.text}")
            return
        raise UploadError(f"Dropbox get_metadata failed: {res.status_code} {res.text}")

    async def _share_link(self, client: httpx.AsyncClient, path: str) -> Optional[str]:
        res = await client.post(
            f"{self.api_url}/sharing/create_shared_link_with_settings",
            headers=self._headers(),
            json={"path": path},
        )
        if res.status_code == 200:
            url = res.json().get("url")
        elif "shared_link_already_exists" in res.text:
            listed = await client.post(
                f"{self.api_url}/sharing/list_shared_links",
                headers=self._headers(),
                json={"path": path, "direct_only": True},
            )
            links = listed.json().get("links") if listed.status_code == 200 else None
            url = links[0].get("url") if links else None
        else:
            url = None
        return url.replace("?dl=0", "?dl=1") if url else None

    async def _upload(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        if not self.token:
            raise UploadError("DROPBOX_ACCESS_TOKEN is not set")
        path = f"{self.folder}/{filename}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            await self._ensure_folder(client)
            res = await client.post(
                f"{self.content_url}/files/upload",
                headers=self._headers(**{
                    "Content-Type": "application/octet-stream",
                    "Dropbox-API-Arg": json.dumps(
                        {"path": path, "mode": "add", "autorename": True, "mute": False}
                    ),
                }),
                content=json.dumps(payload, indent=2).encode("utf-8"),
            )
            if res.status_code != 200:
                raise UploadError(f"Dropbox upload failed: {res.status_code} {res.text}")
            meta = res.json()
            stored_path = meta.get("path_lower") or path

            try:
                url = await self._share_link(client, stored_path)
            except httpx.HTTPError as e:
                # sharing needs an extra scope; the upload itself succeeded
                logger.warning("Dropbox share link failed", extra={"error": str(e)})
                url = None

        return {"provider": "dropbox", "id": meta.get("id"), "path": stored_path, "url": url}


class OneDriveUploader(_HttpUploader):
    provider = "onedrive"
    graph_url = "https://graph.microsoft.com/v1.0"

    def __init__(
        self, token: Optional[str], folder: str, drive: str = "me", timeout: float = 30.0, transport=None
    ):
        self.token = token
        self.folder = folder.strip("/")
        self.drive = drive
        self.timeout = timeout
        self.transport = transport

    async def _upload(self, payload: Dict[str, Any], filename: str) -> Dict[str, Any]:
        if not self.token:
            raise UploadError("ONEDRIVE_ACCESS_TOKEN is not set")
        url = (
            f"{self.graph_url}/{self.drive}/drive/root:/"
            f"{quote(self.folder)}/{quote(filename)}:/content"
        )
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            res = await client.put(
                url,
                headers={"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"},
                content=json.dumps(payload, indent=2).encode("utf-8"),
            )
        if res.status_code not in (200, 201):
            raise UploadError(f"OneDrive upload failed: {res.status_code} {res.text}")
        meta = res.json()
        parent = (meta.get("parentReference") or {}).get("path")
        path = f"{parent}/{meta.get('name')}" if parent else f"/{self.folder}/{filename}"
        return {"provider": "onedrive", "id": meta.get("id"), "path": path, "url": meta.get("webUrl")}


def create_uploader(provider: str) -> Uploader:
    if provider == "onedrive":
        return OneDriveUploader(config.ONEDRIVE_ACCESS_TOKEN, config.ONEDRIVE_FOLDER, config.ONEDRIVE_DRIVE)
    if provider == "dropbox":
        return DropboxUploader(config.DROPBOX_ACCESS_TOKEN, config.DROPBOX_FOLDER)
    raise ValueError(f"Unknown upload provider: {provider}")


_uploader: Optional[Uploader] = None


def get_uploader() -> Uploader:
    global _uploader
    if _uploader is None:
        _uploader = create_uploader(config.UPLOAD_PROVIDER)
    return _uploader
