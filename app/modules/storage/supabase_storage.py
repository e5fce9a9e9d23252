"""Supabase Storage buckets (default backend)."""
import logging
from typing import List

from supabase import Client

from app.config.settings import settings

logger = logging.getLogger(__name__)


class SupabaseStorage:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def upload_file(self, bucket: str, path: str, file_content: bytes, content_type: str) -> str:
        """Upload without overwriting and return the public URL."""
        self.supabase.storage.from_(bucket).upload(
            path,
            file_content,
            {
                "cache-control": settings.storage_cache_control,
                "content-type": content_type,
                "upsert": "false",
            },
        )
        return self.get_public_url(bucket, path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.supabase.storage.from_(bucket).get_public_url(path)

    def delete_files(self, bucket: str, paths: List[str]) -> bool:
        if not paths:
            return True
        try:
            self.supabase.storage.from_(bucket).remove(paths)
            return True
        except Exception as e:
            logger.warning("Failed to delete from Supabase Storage (%s): %s", paths, e)
            return False
