# services/storage_client.py
import hashlib
import mimetypes
import boto3
from botocore.exceptions import ClientError
from settings import (
    USE_STORAGE, STORAGE_BUCKET, STORAGE_ENDPOINT, STORAGE_ACCESS_KEY_ID,
    STORAGE_SECRET_ACCESS_KEY, STORAGE_REGION, STORAGE_PREFIX, storage_public_url
)


def get_storage_client():
    if not USE_STORAGE:
        raise RuntimeError("Object storage is not configured in settings")
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        region_name=STORAGE_REGION,
    )


def generate_image_key(file_bytes: bytes, original_filename: str = None, content_type: str = None) -> str:
    """
    Content-addressed key so re-uploading the same picture reuses the object.
    Example: products/3f786850e387550fdab836ed7e6dc881de23001b.png
    """
    sha1 = hashlib.sha1(file_bytes).hexdigest()
    ext = ""
    if original_filename and "." in original_filename:
        ext = "." + original_filename.rsplit(".", 1)[1].lower()
    if not ext:
        ext = mimetypes.guess_extension(content_type or "") or ".jpg"
    return f"{STORAGE_PREFIX}{sha1}{ext}"


def upload_product_image(file_bytes: bytes, key: str, content_type: str) -> str:
    client = get_storage_client()
    try:
        client.put_object(
            Bucket=STORAGE_BUCKET,
            Key=key,
            Body=file_bytes,
            ContentType=content_type,
        )
    except ClientError as e:
        raise RuntimeError(f"Image upload failed: {e}")
    return storage_public_url(key)
