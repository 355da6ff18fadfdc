import hashlib
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import Request, UploadFile
from loguru import logger

from vidtube.core.config import MediaSettings
from vidtube.core.errors import InternalError, ServiceUnavailableError, ValidationError


@dataclass(frozen=True)
class MediaAsset:
    url: str
    secure_url: str
    public_id: str = ""
    duration: float = 0.0
    resource_type: str = "image"


class MediaUploader(ABC):
    @abstractmethod
    async def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> MediaAsset:
        ...

    async def upload_file(self, file: UploadFile, label: str) -> MediaAsset:
        content = await file.read()
        if not content:
            raise ValidationError(f"{label} file is empty.")
        return await self.upload(file.filename or label, content, file.content_type)

    @abstractmethod
    async def delete(self, asset: MediaAsset) -> None:
        ...

    async def close(self) -> None:
        return None


class CloudinaryClient(MediaUploader):
    def __init__(self, settings: MediaSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(timeout=settings.media_timeout_seconds)

    def _signature(self, params: Dict[str, Any]) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.settings.cloudinary_api_secret}".encode()).hexdigest()

    async def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> MediaAsset:
        params = {"timestamp": int(time.time())}
        data = {
            **params,
            "api_key": self.settings.cloudinary_api_key,
            "signature": self._signature(params),
        }
        try:
            response = await self.client.post(
                self.settings.upload_url,
                data=data,
                files={"file": (filename, content, content_type or "application/octet-stream")},
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(f"Media upload of {filename} timed out: {e}")
            raise ServiceUnavailableError("Media host timed out, retry later.")
        except httpx.HTTPStatusError as e:
            logger.error(f"Media host rejected {filename}: {e.response.status_code} - {e.response.text}")
            raise InternalError("Error uploading file to media host.")
        except httpx.TransportError as e:
            logger.warning(f"Media host unreachable while uploading {filename}: {e}")
            raise ServiceUnavailableError("Media host is unreachable, retry later.")

        payload = response.json()
        logger.info(f"Uploaded {filename} to media host as {payload.get('public_id')}")
        return MediaAsset(
            url=payload.get("url", ""),
            secure_url=payload.get("secure_url") or payload.get("url", ""),
            public_id=payload.get("public_id", ""),
            duration=float(payload.get("duration") or 0),
            resource_type=payload.get("resource_type", "image"),
        )

    async def delete(self, asset: MediaAsset) -> None:
        params = {"public_id": asset.public_id, "timestamp": int(time.time())}
        data = {
            **params,
            "api_key": self.settings.cloudinary_api_key,
            "signature": self._signature(params),
        }
        try:
            response = await self.client.post(self.settings.destroy_url(asset.resource_type), data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Media host refused to delete {asset.public_id}: {e.response.status_code}")
            raise InternalError("Error deleting file from media host.")
        except httpx.TransportError as e:
            logger.warning(f"Media host unreachable while deleting {asset.public_id}: {e}")
            raise ServiceUnavailableError("Media host is unreachable, retry later.")
        logger.info(f"Deleted {asset.public_id} from media host")

    async def close(self) -> None:
        await self.client.aclose()


def get_media(request: Request) -> MediaUploader:
    return request.app.state.media
