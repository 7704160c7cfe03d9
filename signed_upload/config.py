from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Core
    environment: str = Field(default="dev", alias="ENVIRONMENT")
    app_name: str = Field(default="Signed Upload API", alias="APP_NAME")

    # Server
    host: str = Field(default="0.0.0.0", alias="APP_HOST")
    port: int = Field(default=3000, alias="APP_PORT")

    # Shared HMAC secret, hex encoded
    secret_key: str = Field(alias="SECRET_KEY", repr=False)

    # Storage
    storage_provider: str = Field(default="s3", alias="STORAGE_PROVIDER")
    do_spaces_endpoint: Optional[str] = Field(default=None, alias="DO_SPACES_ENDPOINT")
    do_spaces_region: Optional[str] = Field(default=None, alias="DO_SPACES_REGION")
    do_spaces_access_key: Optional[str] = Field(default=None, alias="DO_SPACES_ACCESS_KEY", repr=False)
    do_spaces_secret_key: Optional[str] = Field(default=None, alias="DO_SPACES_SECRET_KEY", repr=False)
    do_spaces_bucket: Optional[str] = Field(default=None, alias="DO_SPACES_BUCKET")
    azure_blob_connection: Optional[str] = Field(default=None, alias="AZURE_BLOB_CONNECTION", repr=False)
    azure_blob_container: Optional[str] = Field(default=None, alias="AZURE_BLOB_CONTAINER")
    local_storage_dir: str = Field(default="var/storage", alias="LOCAL_STORAGE_DIR")
    public_base_url: str = Field(default="http://localhost:3000", alias="PUBLIC_BASE_URL")

    # Upload constraints
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    accepted_media_type: str = Field(default="application/zip", alias="ACCEPTED_MEDIA_TYPE")
    # "request": the transport Content-Type header; "file": the multipart part's own type
    signature_content_type_source: str = Field(default="request", alias="SIGNATURE_CONTENT_TYPE_SOURCE")

    # Rate limit
    rate_limit: str = Field(default="100/minute", alias="RATE_LIMIT")

    @field_validator("secret_key")
    @classmethod
    def _secret_is_hex(cls, value: str) -> str:
        try:
            decoded = bytes.fromhex(value)
        except ValueError:
            raise ValueError("SECRET_KEY must be hex encoded")
        if not decoded:
            raise ValueError("SECRET_KEY must not be empty")
        return value

    @field_validator("storage_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        value = value.lower()
        if value not in {"s3", "blob", "local"}:
            raise ValueError("STORAGE_PROVIDER must be one of: s3, blob, local")
        return value

    @field_validator("signature_content_type_source")
    @classmethod
    def _known_content_type_source(cls, value: str) -> str:
        value = value.lower()
        if value not in {"request", "file"}:
            raise ValueError("SIGNATURE_CONTENT_TYPE_SOURCE must be 'request' or 'file'")
        return value

    @property
    def secret_bytes(self) -> bytes:
        return bytes.fromhex(self.secret_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
