import boto3
from botocore.exceptions import ClientError
from app.config.settings import settings
from typing import List
import logging

logger = logging.getLogger(__name__)


class S3Storage:
    """Single S3 bucket; logical bucket names become key prefixes."""

    def __init__(self):
        if not settings.s3_enabled:
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    @staticmethod
    def _key(bucket: str, path: str) -> str:
        return f"{bucket}/{path}"

    def upload_file(self, bucket: str, path: str, file_content: bytes, content_type: str) -> str:
        """Upload file to S3 and return its public URL"""
        key = self._key(bucket, path)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type,
                CacheControl=f"max-age={settings.storage_cache_control}"
            )
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {str(e)}")
            raise
        return self.get_public_url(bucket, path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{self._key(bucket, path)}"

    def delete_files(self, bucket: str, paths: List[str]) -> bool:
        """Delete files from S3"""
        if not paths:
            return True
        try:
            self.s3_client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": self._key(bucket, p)} for p in paths]}
            )
            return True
        except ClientError as e:
            logger.error(f"Failed to delete files from S3: {str(e)}")
            return False
