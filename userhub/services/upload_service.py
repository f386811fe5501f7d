"""
Avatar upload service - local disk storage.
"""
import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from userhub.config import settings
from userhub.core.exceptions import UploadError

logger = logging.getLogger(__name__)

ALLOWED_MIMETYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
)


@dataclass
class UploadResult:
    filename: str
    original_name: str
    mimetype: str
    size: int
    url: str
    path: str


class LocalUploadService:
    """Stores uploaded files under UPLOAD_PATH and serves them from UPLOAD_URL_PREFIX."""

    def __init__(
        self,
        upload_path: Optional[str] = None,
        url_prefix: Optional[str] = None,
        max_file_size: Optional[int] = None
    ):
        self.upload_path = Path(upload_path or settings.UPLOAD_PATH).resolve()
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")
        self.max_file_size = max_file_size or settings.UPLOAD_MAX_FILE_SIZE
        self.allowed_extensions = [ext.lower() for ext in settings.UPLOAD_ALLOWED_EXTENSIONS]
        self.upload_path.mkdir(parents=True, exist_ok=True)

    def validate(self, filename: Optional[str], content_type: Optional[str], size: int) -> str:
        """Check extension, mimetype and size. Returns the lowercased extension."""
        if not filename:
            raise UploadError("No file found to upload", code="NO_FILE_UPLOADED")

        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if extension not in self.allowed_extensions:
            raise UploadError(
                f"Unsupported file format. Allowed: {', '.join(self.allowed_extensions)}",
                code="INVALID_FILE_TYPE",
            )

        if content_type not in ALLOWED_MIMETYPES:
            raise UploadError("Invalid file type", code="INVALID_MIMETYPE")

        if size > self.max_file_size:
            raise UploadError(
                f"File is too large. Maximum {self.max_file_size // 1024 // 1024}MB",
                code="FILE_TOO_LARGE",
            )
        return extension

    async def upload_file(
        self,
        original_name: Optional[str],
        content_type: Optional[str],
        data: bytes
    ) -> UploadResult:
        """Validate and write the file; the stored name is unique."""
        extension = self.validate(original_name, content_type, len(data))

        filename = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"
        file_path = self.upload_path / filename

        with open(file_path, "wb") as buffer:
            buffer.write(data)

        logger.info(f"File uploaded: {filename} ({len(data)} bytes)")
        return UploadResult(
            filename=filename,
            original_name=original_name,
            mimetype=content_type,
            size=len(data),
            url=self.get_file_url(filename),
            path=str(file_path),
        )

    async def delete_file(self, filename: str) -> bool:
        """Delete a stored file. Missing files are not an error."""
        file_path = self.upload_path / os.path.basename(filename)
        try:
            file_path.unlink()
        except FileNotFoundError:
            logger.info(f"File not found for deletion: {filename}")
            return False
        logger.info(f"File deleted: {filename}")
        return True

    async def delete_by_url(self, url: Optional[str]) -> bool:
        """Delete a file previously returned by get_file_url; other URLs are ignored."""
        if not url or not url.startswith(f"{self.url_prefix}/"):
            return False
        return await self.delete_file(url[len(self.url_prefix) + 1:])

    def get_file_url(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"
