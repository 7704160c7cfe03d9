"""
Authenticated upload pipeline.

An upload passes four gates in order, and the first failing gate ends the
request:

1. header presence (timestamp, signature, device id, declared hash)
2. payload presence (a file part was sent)
3. integrity (SHA-256 of the received bytes equals the declared hash)
4. authenticity (signature over the *computed* hash verifies)

Only then are the bytes handed to the storage provider.
"""
import hashlib
from dataclasses import dataclass
from typing import Optional

import structlog

from ..auth.signature import SignatureVerifier
from ..storage.provider import StorageProvider


logger = structlog.get_logger(__name__)

HASH_METADATA_KEY = "sha256-hash"


class UploadFailure(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthorizationFailure(UploadFailure):
    status_code = 401
    message = "Unauthorized"


class ClientInputFailure(UploadFailure):
    status_code = 400
    message = "Bad request"


class IntegrityFailure(UploadFailure):
    status_code = 400
    message = "File hash mismatch"


class InternalProcessingFailure(UploadFailure):
    status_code = 500
    message = "Error processing upload"


@dataclass
class UploadRequest:
    timestamp: Optional[str]
    signature: Optional[str]
    device_id: Optional[str]
    declared_file_hash: Optional[str]
    content_type: str = ""
    title: str = ""
    file_name: Optional[str] = None
    file_content_type: Optional[str] = None
    file_bytes: Optional[bytes] = None

    def release(self) -> None:
        self.file_bytes = None


@dataclass
class UploadResult:
    storage_location: str
    sha256_hash: str
    file_name: str
    title: str


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def storage_key(device_id: str, file_name: str) -> str:
    return f"{device_id}-{file_name}"


def check_headers(req: UploadRequest) -> None:
    if not (req.timestamp and req.signature and req.device_id and req.declared_file_hash):
        logger.info("upload_rejected", gate="headers", device_id=req.device_id)
        raise AuthorizationFailure()


class UploadHandler:
    """Runs the upload gates and stores verified files."""

    def __init__(self, verifier: SignatureVerifier, storage: StorageProvider):
        self.verifier = verifier
        self.storage = storage

    def handle(self, req: UploadRequest) -> UploadResult:
        """
        Validate ``req`` and store its file.

        Raises a subclass of ``UploadFailure`` on rejection. Anything else
        that goes wrong is logged and re-raised as ``InternalProcessingFailure``
        so no internal detail reaches the caller. ``req.file_bytes`` is
        cleared on every path.
        """
        try:
            check_headers(req)
            if req.file_bytes is None:
                logger.info("upload_rejected", gate="payload", device_id=req.device_id)
                raise ClientInputFailure("No file uploaded")
            return self._verify_and_store(req)
        except UploadFailure:
            raise
        except Exception as e:
            logger.error(
                "upload_failed",
                device_id=req.device_id,
                file_name=req.file_name,
                error=str(e),
                exc_info=True,
            )
            raise InternalProcessingFailure() from e
        finally:
            req.release()

    def _verify_and_store(self, req: UploadRequest) -> UploadResult:
        computed_hash = sha256_hex(req.file_bytes)
        # Integrity check, not a secret comparison
        if computed_hash != req.declared_file_hash:
            logger.info("upload_rejected", gate="integrity", device_id=req.device_id)
            raise IntegrityFailure()

        # Signature is anchored to the bytes actually received, not the declared hash
        if not self.verifier.verify(
            req.signature,
            req.timestamp,
            req.content_type or "",
            req.device_id,
            computed_hash,
        ):
            logger.info("upload_rejected", gate="signature", device_id=req.device_id)
            raise AuthorizationFailure()

        file_name = req.file_name or ""
        key = storage_key(req.device_id, file_name)
        location = self.storage.put(
            key,
            req.file_bytes,
            content_type=req.file_content_type,
            metadata={HASH_METADATA_KEY: computed_hash},
            acl="public-read",
        )
        logger.info("upload_stored", key=key, sha256_hash=computed_hash, location=location)
        return UploadResult(
            storage_location=location,
            sha256_hash=computed_hash,
            file_name=file_name,
            title=req.title,
        )
