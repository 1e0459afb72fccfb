"""Upload data models."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    """Response model for file upload."""

    url: str


class ErrorResponse(BaseModel):
    """Error body returned for 4xx and 5xx responses."""

    detail: str
