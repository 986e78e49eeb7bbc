import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import structlog

from animal_sos.core.config import settings
from animal_sos.core.exceptions import DependencyError, ValidationError
from animal_sos.models.report import MediaKind
from animal_sos.schemas.report import MediaRef

logger = structlog.get_logger()


class MediaStorage:
    """
    Stores uploaded report media and hands back a {url, kind} reference.
    File bytes are never inspected, only the declared content type.
    """

    CHUNK_SIZE = 1024 * 1024

    @staticmethod
    def max_bytes() -> int:
        return settings.MAX_UPLOAD_MB * 1024 * 1024

    @classmethod
    def _too_large(cls) -> ValidationError:
        return ValidationError(f"Upload limit of {settings.MAX_UPLOAD_MB}MB exceeded")

    @classmethod
    async def read_upload(cls, upload) -> bytes:
        """
        Reads an UploadFile in chunks, giving up as soon as the size limit
        is passed instead of buffering the whole body first.
        """
        limit = cls.max_bytes()
        size = getattr(upload, "size", None)
        if size is not None and size > limit:
            raise cls._too_large()

        chunks = []
        total = 0
        while True:
            chunk = await upload.read(cls.CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                raise cls._too_large()
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    def kind_for(content_type: Optional[str]) -> MediaKind:
        content_type = (content_type or "").lower()
        if content_type.startswith("image/"):
            return MediaKind.IMAGE
        if content_type.startswith("video/"):
            return MediaKind.VIDEO
        raise ValidationError("Only image and video uploads are supported")

    @classmethod
    async def upload(
        cls, filename: Optional[str], content_type: Optional[str], content: bytes
    ) -> MediaRef:
        kind = cls.kind_for(content_type)

        if len(content) > cls.max_bytes():
            raise cls._too_large()

        ext = os.path.splitext(filename or "")[1].lower()
        stored_name = f"{uuid.uuid4().hex}{ext}"

        try:
            Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
            file_path = os.path.join(settings.UPLOAD_DIR, stored_name)
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(content)
        except OSError as e:
            logger.error("media_upload_failed", file_name=stored_name, error=str(e))
            raise DependencyError("Media upload failed") from e

        url = f"{settings.MEDIA_BASE_URL.rstrip('/')}/{stored_name}"
        logger.info("media_uploaded", file_name=stored_name, kind=kind.value, size_bytes=len(content))
        return MediaRef(url=url, kind=kind)
