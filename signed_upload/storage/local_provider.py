"""
Local filesystem storage provider for development.
Saves uploads to a local directory instead of an object store.
"""
import json
from typing import Dict, Optional
from pathlib import Path
from urllib.parse import quote

from ..config import Settings
from .provider import StorageError, StorageProvider


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider for development."""

    def __init__(self, settings: Settings):
        self.base_dir = Path(settings.local_storage_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = settings.public_base_url.rstrip("/")

    def _get_path(self, key: str) -> Path:
        """Get the local filesystem path for a given key."""
        clean_key = key.replace("\\", "/").replace("..", "").lstrip("/")
        return self.base_dir / clean_key

    def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "public-read",
    ) -> str:
        path = self._get_path(key)
        sidecar = path.with_name(path.name + ".meta.json")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            sidecar.write_text(
                json.dumps({"content_type": content_type, "acl": acl, "metadata": metadata or {}}),
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Local write failed for {key}: {e}") from e
        return f"{self.public_base_url}/files/{quote(key.lstrip('/'))}"
