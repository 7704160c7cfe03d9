from typing import Dict, Optional


class StorageError(Exception):
    """Raised by a provider when the backend rejects or fails a write."""


class StorageProvider:
    def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "public-read",
    ) -> str:
        """Store ``data`` under ``key`` and return the object's location."""
        raise NotImplementedError
