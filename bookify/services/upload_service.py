import logging
import uuid
from typing import Optional
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool
from bookify.config import settings

logger = logging.getLogger(__name__)

# Max file size: 5MB
MAX_FILE_SIZE = 5 * 1024 * 1024

ALLOWED_TYPES = ["image/jpeg", "image/png", "image/webp", "image/gif"]


def get_storage_client():
    """Get S3-compatible storage client"""
    return boto3.client(
        's3',
        endpoint_url=settings.storage_endpoint,
        aws_access_key_id=settings.storage_access_key_id,
        aws_secret_access_key=settings.storage_secret_access_key,
        region_name='auto'
    )


def build_public_url(key: str) -> str:
    if settings.storage_public_url:
        return f"{settings.storage_public_url.rstrip('/')}/{key}"
    return f"{settings.storage_endpoint}/{settings.storage_bucket}/{key}"


async def upload_image(
    file_content: bytes,
    filename: str,
    content_type: str,
    folder: str = "images"
) -> Optional[str]:
    """
    Upload image to object storage.

    Returns the public URL, or None if the upload failed.
    """
    ext = filename.rsplit('.', 1)[-1].lower() if filename and '.' in filename else 'jpg'
    key = f"{folder}/{uuid.uuid4()}.{ext}"

    try:
        client = get_storage_client()
        await run_in_threadpool(
            client.put_object,
            Bucket=settings.storage_bucket,
            Key=key,
            Body=file_content,
            ContentType=content_type
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Storage upload error for {key}: {e}")
        return None

    logger.info(f"Uploaded image: {key}")
    return build_public_url(key)


async def upload_or_default(file_content: Optional[bytes], filename: Optional[str],
                            content_type: Optional[str], folder: str) -> str:
    """Upload the image when one was sent, falling back to the default image"""
    if not file_content:
        return settings.default_image_url

    url = await upload_image(file_content, filename or "image.jpg", content_type or "image/jpeg", folder)
    return url or settings.default_image_url
