from typing import Dict, Optional

from azure.core.exceptions import AzureError
from azure.storage.blob import BlobServiceClient, ContentSettings

from ..config import Settings
from .provider import StorageError, StorageProvider


class BlobStorageProvider(StorageProvider):
    def __init__(self, settings: Settings, service: Optional[BlobServiceClient] = None) -> None:
        if not settings.azure_blob_container:
            raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
        if service is None:
            if not settings.azure_blob_connection:
                raise RuntimeError("AZURE_BLOB_CONNECTION and AZURE_BLOB_CONTAINER must be set")
            service = BlobServiceClient.from_connection_string(settings.azure_blob_connection)
        self._service = service
        self._container = settings.azure_blob_container

    def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "public-read",
    ) -> str:
        # Azure has no per-blob ACL; public reads follow the container's access level.
        # Metadata names must be C# identifiers, so "sha256-hash" becomes "sha256_hash".
        blob_metadata = {k.replace("-", "_"): v for k, v in (metadata or {}).items()}
        client = self._service.get_blob_client(self._container, key.lstrip("/"))
        try:
            client.upload_blob(
                data,
                overwrite=True,
                metadata=blob_metadata,
                content_settings=ContentSettings(content_type=content_type) if content_type else None,
            )
        except AzureError as e:
            raise StorageError(f"Azure upload_blob failed for {key}: {e}") from e
        return client.url
