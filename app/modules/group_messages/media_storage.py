"""Storage backends for group message attachments."""
import boto3
from botocore.exceptions import ClientError
from fastapi import Depends
from supabase import Client
from app.config import settings
from app.database.supabase_client import get_supabase
import logging

logger = logging.getLogger(__name__)

SUPABASE_MEDIA_BUCKET = "group-media"

ALLOWED_MEDIA_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
}


class S3MediaStorage:
    def __init__(self):
        if not all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    def public_url(self, key: str) -> str:
        if settings.s3_public_base_url:
            return f"{settings.s3_public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def upload_file(self, file_content: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """Upload file to S3 and return its public URL"""
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type,
                ContentDisposition="inline"
            )
            return self.public_url(key)
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {str(e)}")
            raise

    def delete_file(self, key: str) -> bool:
        """Delete file from S3"""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            logger.error(f"Failed to delete file from S3: {str(e)}")
            return False


class SupabaseMediaStorage:
    """Fallback when S3 is not configured: a public Supabase Storage bucket."""

    def __init__(self, supabase: Client, bucket_name: str = SUPABASE_MEDIA_BUCKET):
        self.bucket = supabase.storage.from_(bucket_name)
        self.bucket_name = bucket_name

    def upload_file(self, file_content: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        self.bucket.upload(key, file_content, {"content-type": content_type})
        return self.bucket.get_public_url(key)

    def delete_file(self, key: str) -> bool:
        try:
            self.bucket.remove([key])
            return True
        except Exception as e:
            logger.warning("Failed to delete from Supabase Storage (%s): %s", key, e)
            return False


def get_media_storage(supabase: Client = Depends(get_supabase)):
    try:
        return S3MediaStorage()
    except ValueError as e:
        logger.debug(f"S3 storage unavailable ({str(e)}), using Supabase Storage")
        return SupabaseMediaStorage(supabase)
