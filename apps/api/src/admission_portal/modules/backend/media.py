"""
Media Uploads (Cloudinary)

Unsigned image uploads for applicant photos, signatures and marksheets,
plus delivery URL helpers.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

import httpx
from fastapi import status
from pydantic import BaseModel

from admission_portal.core.config import settings
from admission_portal.core.errors import PortalServiceError, to_http_exception

logger = logging.getLogger(__name__)

CLOUDINARY_API_URL = "https://api.cloudinary.com/v1_1"
CLOUDINARY_DELIVERY_URL = "https://res.cloudinary.com"


class MediaValidationError(PortalServiceError):
    error_code = "INVALID_FILE"
    status_code = status.HTTP_400_BAD_REQUEST


class MediaUploadError(PortalServiceError):
    error_code = "UPLOAD_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY


class UploadedMedia(BaseModel):
    public_id: str
    secure_url: str
    url: str | None = None
    format: str | None = None
    width: int | None = None
    height: int | None = None
    bytes: int | None = None


class MediaUploader:
    def __init__(
        self,
        cloud_name: str,
        upload_preset: str,
        max_bytes: int = 5 * 1024 * 1024,
        client: httpx.AsyncClient | None = None,
    ):
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.max_bytes = max_bytes
        self._client = client or httpx.AsyncClient(timeout=60.0)

    def validate(self, content: bytes, content_type: str | None) -> None:
        if not content_type or not content_type.startswith("image/"):
            raise MediaValidationError("File must be an image")
        if len(content) > self.max_bytes:
            raise MediaValidationError("File size must be less than 5MB")

    async def upload_image(
        self,
        content: bytes,
        filename: str,
        content_type: str | None,
        folder: str = "admission-portal",
    ) -> UploadedMedia:
        """Upload one image. Validation happens before any network call."""
        self.validate(content, content_type)

        try:
            response = await self._client.post(
                f"{CLOUDINARY_API_URL}/{self.cloud_name}/image/upload",
                data={"upload_preset": self.upload_preset, "folder": folder},
                files={"file": (filename, content, content_type)},
            )
        except httpx.HTTPError as e:
            logger.error(f"Cloudinary upload error: {e}")
            raise MediaUploadError("Upload failed") from e

        if response.is_error:
            try:
                message = response.json().get("error", {}).get("message")
            except (AttributeError, ValueError):
                message = None
            logger.warning(f"Cloudinary rejected upload ({response.status_code}): {message}")
            raise MediaUploadError(message or "Upload failed")

        return UploadedMedia.model_validate(response.json())

    async def upload_many(
        self,
        files: list[tuple[bytes, str, str | None]],
        folder: str = "admission-portal",
    ) -> list[UploadedMedia]:
        return list(
            await asyncio.gather(
                *(self.upload_image(content, name, ctype, folder) for content, name, ctype in files)
            )
        )

    def image_url(self, public_id: str, transformations: str = "") -> str:
        return f"{CLOUDINARY_DELIVERY_URL}/{self.cloud_name}/image/upload/{transformations}/{public_id}"

    def optimized_image_url(self, public_id: str, width: int = 800, quality: int = 80) -> str:
        return self.image_url(public_id, f"f_auto,q_{quality},w_{width}")

    async def aclose(self) -> None:
        await self._client.aclose()


async def get_media_uploader() -> AsyncGenerator[MediaUploader, None]:
    """FastAPI dependency yielding an uploader built from settings."""
    if not settings.cloudinary_cloud_name or not settings.cloudinary_upload_preset:
        raise to_http_exception(
            MediaUploadError(
                "Document uploads are not configured",
                error_code="UPLOAD_NOT_CONFIGURED",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        )
    uploader = MediaUploader(
        cloud_name=settings.cloudinary_cloud_name,
        upload_preset=settings.cloudinary_upload_preset,
        max_bytes=settings.max_upload_bytes,
    )
    try:
        yield uploader
    finally:
        await uploader.aclose()
