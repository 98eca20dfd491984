import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings


def get_s3_client():
    """
    SDK client for server-side upload/download.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def download_file(key: str, local_path, client=None, bucket: str | None = None):
    """
    Download a single object to local_path. Transport errors propagate unchanged.
    """
    s3 = client or get_s3_client()
    s3.download_file(bucket or settings.S3_BUCKET, key, str(local_path))


def upload_file(local_path, key: str, content_type: str | None = None, client=None, bucket: str | None = None):
    """
    Upload a single file to S3/MinIO with an optional Content-Type.
    """
    s3 = client or get_s3_client()
    extra = {}
    if content_type:
        extra["ContentType"] = content_type
    s3.upload_file(str(local_path), bucket or settings.S3_BUCKET, key, ExtraArgs=extra or None)
