from typing import Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings
from .provider import StorageError, StorageProvider


class S3StorageProvider(StorageProvider):
    """S3-compatible object storage (DigitalOcean Spaces, MinIO, AWS S3)."""

    def __init__(self, settings: Settings, client=None) -> None:
        if not settings.do_spaces_endpoint or not settings.do_spaces_bucket:
            raise RuntimeError("DO_SPACES_ENDPOINT and DO_SPACES_BUCKET must be set")
        self._endpoint = settings.do_spaces_endpoint.rstrip("/")
        self._bucket = settings.do_spaces_bucket
        if client is None:
            if not settings.do_spaces_access_key or not settings.do_spaces_secret_key:
                raise RuntimeError("DO_SPACES_ACCESS_KEY and DO_SPACES_SECRET_KEY must be set")
            client = boto3.client(
                "s3",
                endpoint_url=self._endpoint,
                region_name=settings.do_spaces_region,
                aws_access_key_id=settings.do_spaces_access_key,
                aws_secret_access_key=settings.do_spaces_secret_key,
            )
        self._client = client

    def location_for(self, key: str) -> str:
        return f"{self._endpoint}/{self._bucket}/{quote(key)}"

    def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "public-read",
    ) -> str:
        params = {
            "Bucket": self._bucket,
            "Key": key,
            "Body": data,
            "ACL": acl,
            "Metadata": dict(metadata or {}),
        }
        if content_type:
            params["ContentType"] = content_type
        try:
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 put_object failed for {key}: {e}") from e
        return self.location_for(key)
