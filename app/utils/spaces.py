"""Object storage (DigitalOcean Spaces / MinIO) for captured documents."""

from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from app.core.config import get_settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)


def _client_for(endpoint: str) -> Any:
    current_settings = get_settings()
    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id=current_settings.SPACES_KEY,
        aws_secret_access_key=current_settings.SPACES_SECRET,
        region_name=current_settings.SPACES_REGION,
        config=Config(signature_version="s3v4"),
    )


def get_s3_client() -> Any:
    """Create an S3 client configured for Spaces/MinIO."""
    return _client_for(get_settings().SPACES_ENDPOINT)


def generate_presigned_url(
    key: str, content_type: str, expires_in: int = 3600, read_expires_in: int = 86400
) -> dict:
    """
    Generate presigned URLs for uploading and reading one object.

    Args:
        key: Object key inside the configured bucket
        content_type: MIME type the client must send with the PUT
        expires_in: Upload URL lifetime in seconds
        read_expires_in: Read URL lifetime in seconds

    Returns:
        Dictionary with 'upload_url' and 'file_url'
    """
    current_settings = get_settings()

    # Containers reach MinIO via host.docker.internal, browsers via localhost
    endpoint_for_url = current_settings.SPACES_ENDPOINT.replace(
        "host.docker.internal", "localhost"
    )
    client = _client_for(endpoint_for_url)

    upload_url = client.generate_presigned_url(
        "put_object",
        Params={
            "Bucket": current_settings.SPACES_BUCKET,
            "Key": key,
            "ContentType": content_type,
        },
        ExpiresIn=expires_in,
        HttpMethod="PUT",
    )
    file_url = client.generate_presigned_url(
        "get_object",
        Params={"Bucket": current_settings.SPACES_BUCKET, "Key": key},
        ExpiresIn=read_expires_in,
        HttpMethod="GET",
    )

    return {"upload_url": upload_url, "file_url": file_url}


def generate_read_url(key: str, expires_in: int = 3600) -> str:
    current_settings = get_settings()
    return get_s3_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": current_settings.SPACES_BUCKET, "Key": key},
        ExpiresIn=expires_in,
        HttpMethod="GET",
    )


def delete_object(key: str) -> None:
    """Delete an object. A missing object is not an error."""
    current_settings = get_settings()
    try:
        get_s3_client().delete_object(Bucket=current_settings.SPACES_BUCKET, Key=key)
    except ClientError as e:
        logger.warning(f"Could not delete object {key}: {e}")


def ensure_bucket_exists() -> None:
    """Create the configured bucket if it is missing (useful for MinIO setup)."""
    current_settings = get_settings()
    s3_client = get_s3_client()

    try:
        s3_client.head_bucket(Bucket=current_settings.SPACES_BUCKET)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")
        if error_code not in ("404", "NoSuchBucket"):
            logger.error(f"Error checking bucket {current_settings.SPACES_BUCKET}: {e}")
            raise
        s3_client.create_bucket(Bucket=current_settings.SPACES_BUCKET)
        logger.info(f"Created bucket: {current_settings.SPACES_BUCKET}")
