import pytest
from pydantic import ValidationError

from signed_upload.config import Settings


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "0a0b0c")
    monkeypatch.setenv("APP_PORT", "8080")
    monkeypatch.setenv("STORAGE_PROVIDER", "LOCAL")
    monkeypatch.setenv("DO_SPACES_BUCKET", "device-logs")
    settings = Settings()
    assert settings.secret_bytes == b"\x0a\x0b\x0c"
    assert settings.port == 8080
    assert settings.storage_provider == "local"
    assert settings.do_spaces_bucket == "device-logs"


def test_defaults():
    settings = Settings(secret_key="00" * 32)
    assert settings.port == 3000
    assert settings.max_upload_bytes == 50 * 1024 * 1024
    assert settings.accepted_media_type == "application/zip"
    assert settings.signature_content_type_source == "request"


@pytest.mark.parametrize("secret", ["not-hex", "abc", ""])
def test_rejects_invalid_secret(secret):
    with pytest.raises(ValidationError):
        Settings(secret_key=secret)


def test_secret_is_required(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_rejects_unknown_storage_provider():
    with pytest.raises(ValidationError):
        Settings(secret_key="00", storage_provider="ftp")


def test_rejects_unknown_content_type_source():
    with pytest.raises(ValidationError):
        Settings(secret_key="00", signature_content_type_source="body")


def test_repr_hides_secrets():
    settings = Settings(secret_key="deadbeef", do_spaces_secret_key="s3cr3t")
    assert "deadbeef" not in repr(settings)
    assert "s3cr3t" not in repr(settings)
