import logging
import re
import uuid
from urllib.parse import unquote
from typing import List, Optional, Tuple

from fastapi import HTTPException, UploadFile
from supabase import Client

from app.config.settings import settings
from app.modules.storage.s3_storage import S3Storage
from app.modules.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: Optional[str]) -> str:
    name = (filename or "file").rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "file"


def build_object_path(prefix: str, filename: Optional[str]) -> str:
    """Unique object path under prefix; uploads never overwrite."""
    return f"{prefix}/{uuid.uuid4().hex}-{safe_filename(filename)}"


def object_path_from_url(bucket: str, url: Optional[str]) -> Optional[str]:
    """Object path of a public URL produced for `bucket`, or None for foreign URLs"""
    marker = f"/{bucket}/"
    if not url or marker not in url:
        return None
    path = unquote(url.split(marker, 1)[1].split("?", 1)[0])
    return path or None


async def read_upload(file: UploadFile, max_bytes: Optional[int] = None) -> Tuple[bytes, str]:
    """Read an UploadFile fully, enforcing the size limit. Returns (content, content_type)."""
    limit = max_bytes or settings.max_upload_bytes
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > limit:
        raise HTTPException(status_code=413, detail=f"File exceeds maximum size of {limit} bytes")
    return content, file.content_type or "application/octet-stream"


class FileStorageService:
    """S3 when AWS credentials are configured, otherwise Supabase Storage."""

    def __init__(self, supabase: Client):
        self.backend = None
        if settings.s3_enabled:
            try:
                self.backend = S3Storage()
                logger.info("S3 storage initialized successfully")
            except Exception as e:
                logger.warning(f"S3 storage initialization failed ({str(e)}), will use Supabase Storage")
        if self.backend is None:
            self.backend = SupabaseStorage(supabase)

    def upload_file(self, bucket: str, path: str, file_content: bytes, content_type: str) -> str:
        try:
            return self.backend.upload_file(bucket, path, file_content, content_type)
        except Exception as e:
            logger.error("Upload to %s/%s failed: %s", bucket, path, e)
            raise HTTPException(status_code=500, detail=f"Failed to upload to storage: {str(e)}")

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.backend.get_public_url(bucket, path)

    def delete_files(self, bucket: str, paths: List[str]) -> bool:
        return self.backend.delete_files(bucket, paths)

    def delete_urls(self, bucket: str, urls: List[Optional[str]]) -> bool:
        """Delete the objects behind public URLs; URLs outside the bucket are ignored"""
        paths = [p for p in (object_path_from_url(bucket, url) for url in urls) if p]
        if not paths:
            return True
        deleted = self.delete_files(bucket, paths)
        if not deleted:
            logger.warning("Could not delete %d object(s) from %s", len(paths), bucket)
        return deleted
