"""
Media storage collaborator.

Uploads and deletions go through an object-storage gateway; the store only
keeps the resulting URLs. Deleting media never participates in a database
transaction.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Optional

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class MediaStorage(ABC):

    @abstractmethod
    async def upload(self, stream: BinaryIO, filename: str, resource_type: str = "video") -> Dict[str, str]:
        """Persist a media stream and return ``{"url": ...}``."""

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Remove the object addressed by ``url``."""


class HttpMediaStorage(MediaStorage):
    """Storage gateway client over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.storage_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.storage_api_key
        self.timeout = timeout or settings.storage_timeout_seconds

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    async def upload(self, stream: BinaryIO, filename: str, resource_type: str = "video") -> Dict[str, str]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/objects",
                headers=self._headers(),
                data={"resource_type": resource_type},
                files={"file": (filename, stream)},
            )
            response.raise_for_status()
            url = response.json()["url"]
        logger.info(f"Uploaded {resource_type} {filename} -> {url}")
        return {"url": url}

    async def delete(self, url: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                "DELETE",
                f"{self.base_url}/objects",
                headers=self._headers(),
                params={"url": url},
            )
            if response.status_code != 404:
                response.raise_for_status()


_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    """FastAPI dependency returning the process-wide storage client."""
    global _storage
    if _storage is None:
        _storage = HttpMediaStorage()
    return _storage
