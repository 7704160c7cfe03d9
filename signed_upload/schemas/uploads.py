from pydantic import BaseModel


class UploadResponse(BaseModel):
    message: str
    filename: str
    title: str
    s3Location: str
    sha256Hash: str


class ErrorResponse(BaseModel):
    error: str
