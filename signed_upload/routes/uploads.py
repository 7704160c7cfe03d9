from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from ..auth.signature import SignatureVerifier, get_verifier
from ..config import Settings, get_settings
from ..schemas.uploads import ErrorResponse, UploadResponse
from ..services.uploads import UploadHandler, UploadRequest, check_headers
from ..storage.blob_provider import BlobStorageProvider
from ..storage.local_provider import LocalStorageProvider
from ..storage.provider import StorageProvider
from ..storage.s3_provider import S3StorageProvider


router = APIRouter(tags=["uploads"])


def get_storage(settings: Settings = Depends(get_settings)) -> StorageProvider:
    """
    Get storage provider based on configuration.
    Uses S3StorageProvider (DigitalOcean Spaces or any S3-compatible endpoint) by default,
    BlobStorageProvider for Azure and LocalStorageProvider for local development.
    """
    if settings.storage_provider == "blob":
        return BlobStorageProvider(settings)
    if settings.storage_provider == "local":
        return LocalStorageProvider(settings)
    return S3StorageProvider(settings)


def require_upload_headers(
    x_timestamp: Optional[str] = Header(None),
    x_signature: Optional[str] = Header(None),
    x_device_id: Optional[str] = Header(None),
    x_file_hash: Optional[str] = Header(None),
) -> UploadRequest:
    """Reject requests without the four auth headers before the body or storage is touched."""
    req = UploadRequest(
        timestamp=x_timestamp,
        signature=x_signature,
        device_id=x_device_id,
        declared_file_hash=x_file_hash,
    )
    check_headers(req)
    return req


def get_upload_handler(
    _auth: UploadRequest = Depends(require_upload_headers),
    verifier: SignatureVerifier = Depends(get_verifier),
    storage: StorageProvider = Depends(get_storage),
) -> UploadHandler:
    return UploadHandler(verifier=verifier, storage=storage)


def _check_constraints(file: UploadFile, title: Optional[str], settings: Settings) -> None:
    if title is None:
        raise HTTPException(status_code=422, detail="Invalid request: title")
    media_type = (file.content_type or "").split(";")[0].strip().lower()
    if media_type != settings.accepted_media_type.lower():
        raise HTTPException(status_code=422, detail=f"File must be of type {settings.accepted_media_type}")
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")


@router.post(
    "/upload-logs",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_logs(
    req: UploadRequest = Depends(require_upload_headers),
    handler: UploadHandler = Depends(get_upload_handler),
    settings: Settings = Depends(get_settings),
    content_type: Optional[str] = Header(None),
    title: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """
    Accept a signed log archive from a device and store it.

    The signature covers ``x-timestamp``, the Content-Type header, ``x-device-id``
    and the SHA-256 of the file, concatenated in that order.
    """
    if settings.signature_content_type_source == "file" and file is not None:
        req.content_type = file.content_type or ""
    else:
        req.content_type = content_type or ""

    try:
        # Without a file part the handler's payload gate answers 400
        if file is not None:
            _check_constraints(file, title, settings)
            req.title = title
            req.file_name = file.filename
            req.file_content_type = file.content_type
            req.file_bytes = await file.read()
            if len(req.file_bytes) > settings.max_upload_bytes:
                raise HTTPException(status_code=413, detail="File too large")
        result = await run_in_threadpool(handler.handle, req)
    finally:
        req.release()
        if file is not None:
            await file.close()

    return UploadResponse(
        message="File uploaded successfully",
        filename=result.file_name,
        title=result.title,
        s3Location=result.storage_location,
        sha256Hash=result.sha256_hash,
    )
