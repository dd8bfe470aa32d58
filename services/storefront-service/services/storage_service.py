"""Product image storage on the local media volume."""
import logging
import uuid
from pathlib import Path
from typing import List, Sequence

from fastapi import UploadFile

from config import MEDIA_ROOT, MEDIA_URL, PRODUCT_IMAGES_BUCKET

logger = logging.getLogger(__name__)


class ProductImageStorage:
    """Stores uploads under randomized names and hands back their public URLs."""

    def __init__(
        self,
        media_root: str = MEDIA_ROOT,
        media_url: str = MEDIA_URL,
        bucket: str = PRODUCT_IMAGES_BUCKET
    ):
        self.directory = Path(media_root) / bucket
        self.base_url = f"{media_url.rstrip('/')}/{bucket}"

    @staticmethod
    def random_name(filename: str) -> str:
        extension = Path(filename or "").suffix.lstrip(".").lower() or "bin"
        return f"{uuid.uuid4().hex}.{extension}"

    async def upload(self, upload: UploadFile) -> str:
        """Write one upload to storage and return its public URL."""
        name = self.random_name(upload.filename)
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(await upload.read())

        logger.info("Stored product image", extra={
            "original_name": upload.filename,
            "stored_name": name
        })
        return f"{self.base_url}/{name}"

    async def upload_all(self, uploads: Sequence[UploadFile]) -> List[str]:
        return [await self.upload(upload) for upload in uploads]

    def discard(self, urls: Sequence[str]) -> None:
        """Delete stored files by public URL; URLs outside this bucket are ignored."""
        prefix = f"{self.base_url}/"
        for url in urls:
            if url.startswith(prefix):
                (self.directory / url[len(prefix):]).unlink(missing_ok=True)
        logger.info("Discarded product images", extra={"count": len(urls)})
