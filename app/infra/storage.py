import logging
import os
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger("uvicorn.error")

ALLOWED_IMAGE_FORMATS = ("jpg", "jpeg", "png", "webp")

AWS_REGION = settings.aws_region or "us-east-1"
S3_BUCKET_NAME = settings.s3_bucket_name

s3 = boto3.client(
    's3',
    aws_access_key_id=settings.aws_access_key_id or None,
    aws_secret_access_key=settings.aws_secret_key or None,
    region_name=AWS_REGION,
)


class UnsupportedImageError(ValueError):
    pass


def public_base_url() -> str:
    if settings.s3_public_base_url:
        return settings.s3_public_base_url.rstrip('/')
    return f"https://{S3_BUCKET_NAME}.s3.{AWS_REGION}.amazonaws.com"


def image_format(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower().lstrip('.')
    if ext not in ALLOWED_IMAGE_FORMATS:
        raise UnsupportedImageError(
            f"Unsupported image format '{ext or filename}'. Allowed formats: {', '.join(ALLOWED_IMAGE_FORMATS)}"
        )
    return ext


def upload_product_image(fileobj, filename: str, content_type: str = None) -> str:
    """Store an image under the products folder and return its public URL."""
    ext = image_format(filename)
    key = f"{settings.s3_products_folder}/{uuid.uuid4().hex}.{ext}"
    extra_args = {"ContentType": content_type} if content_type else {}
    s3.upload_fileobj(fileobj, S3_BUCKET_NAME, key, ExtraArgs=extra_args)
    logger.info(f"Uploaded product image to s3://{S3_BUCKET_NAME}/{key}")
    return f"{public_base_url()}/{key}"


def key_from_url(url: str) -> str:
    """Object key for a URL we issued, or '' for images hosted elsewhere."""
    prefix = public_base_url() + "/"
    if url and url.startswith(prefix):
        return url[len(prefix):]
    return ""


def delete_image(key: str) -> bool:
    try:
        s3.delete_object(Bucket=S3_BUCKET_NAME, Key=key)
        logger.info(f"Deleted product image s3://{S3_BUCKET_NAME}/{key}")
        return True
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Error deleting image {key} from S3: {e}")
        return False
