from __future__ import annotations

import hashlib
import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("SECRET_KEY", "00" * 32)

from signed_upload.auth.signature import SignatureVerifier, calculate_signature
from signed_upload.config import Settings
from signed_upload.main import create_app
from signed_upload.routes.uploads import get_storage
from signed_upload.storage.provider import StorageError, StorageProvider


SECRET_HEX = "00" * 32
SECRET = bytes.fromhex(SECRET_HEX)
BOUNDARY = "testboundary"
MULTIPART_TYPE = f"multipart/form-data; boundary={BOUNDARY}"
ZIP_BYTES = b"PK\x03\x04" + b"log line\n" * 64


class MemoryStorage(StorageProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.puts: list[dict] = []

    def put(self, key, data, content_type=None, metadata=None, acl="public-read"):
        if self.fail:
            raise StorageError("backend unavailable at 10.0.0.5")
        self.puts.append(
            {"key": key, "data": data, "content_type": content_type, "metadata": metadata, "acl": acl}
        )
        return f"https://bucket.example.com/{key}"


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def upload_files(
    data: bytes | None = ZIP_BYTES,
    title: str | None = "nightly logs",
    file_name: str = "logs.zip",
    file_type: str = "application/zip",
) -> dict | None:
    """Multipart fields for httpx; the boundary comes from the request's Content-Type header."""
    files = {}
    if title is not None:
        files["title"] = (None, title)
    if data is not None:
        files["file"] = (file_name, data, file_type)
    return files or None


def signed_headers(
    data: bytes = ZIP_BYTES,
    device_id: str = "dev1",
    timestamp: str = "1700000000",
    content_type: str = MULTIPART_TYPE,
    secret: bytes = SECRET,
) -> dict:
    file_hash = sha256_hex(data)
    return {
        "Content-Type": MULTIPART_TYPE,
        "x-timestamp": timestamp,
        "x-device-id": device_id,
        "x-file-hash": file_hash,
        "x-signature": calculate_signature(timestamp, content_type, device_id, file_hash, secret),
    }


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key=SECRET_HEX,
        storage_provider="local",
        local_storage_dir=str(tmp_path / "storage"),
        public_base_url="http://testserver",
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def verifier() -> SignatureVerifier:
    return SignatureVerifier(SECRET)


@pytest.fixture
def make_client(settings, storage):
    def _make(settings_override: Settings | None = None, storage_override: StorageProvider | None = None):
        app = create_app(settings_override or settings)
        app.dependency_overrides[get_storage] = lambda: storage_override or storage
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
