"""Upload API routes."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from starlette.datastructures import UploadFile

from hashvault.core.config import settings
from hashvault.core.exceptions import (
    ClientError,
    ObjectNotFoundError,
    StoreConfigurationError,
    UploadError,
)
from hashvault.models.upload import ErrorResponse, UploadResponse
from hashvault.storage.factory import get_object_store
from hashvault.uploads.service import StreamingDigestUploader, iter_upload_file

router = APIRouter(tags=["uploads"])
logger = logging.getLogger(__name__)


def get_uploader() -> StreamingDigestUploader:
    """Build an uploader over the configured object store."""
    try:
        store = get_object_store()
    except StoreConfigurationError as e:
        logger.error(f"Storage backend configuration error: {e}")
        raise HTTPException(status_code=500, detail="Storage configuration error")
    return StreamingDigestUploader(store)


@router.post(
    "/uploads",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_file(
    request: Request,
    uploader: StreamingDigestUploader = Depends(get_uploader),
) -> UploadResponse:
    """Store the ``upload`` field under its content-addressed key.

    The field may be a file or a plain text value. Text values carry no
    filename or content type.
    """
    form = await request.form()
    try:
        try:
            upload = require_upload(form.get("upload"))
        except ClientError as e:
            raise HTTPException(status_code=400, detail=str(e))

        filename = content_type = None
        if isinstance(upload, UploadFile):
            filename, content_type = upload.filename, upload.content_type

        try:
            key = await uploader.upload(
                iter_upload_file(upload, settings.UPLOAD_CHUNK_SIZE),
                filename=filename,
                content_type=content_type,
            )
        except UploadError:
            # Already logged with backend detail by the uploader
            raise HTTPException(status_code=500, detail="Internal server error")
    finally:
        await form.close()

    return UploadResponse(url=f"/uploads/{key}")


def require_upload(upload: Optional[Union[UploadFile, str]]) -> Union[UploadFile, str]:
    """Return the upload field, or raise ClientError if the form lacks it."""
    if upload is None:
        raise ClientError("Missing upload field")
    return upload


@router.get(
    "/uploads/{key:path}",
    response_class=StreamingResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def download_file(
    key: str,
    uploader: StreamingDigestUploader = Depends(get_uploader),
) -> StreamingResponse:
    """Stream a stored object back with a long-lived cache directive.

    Keys are content-addressed, so the bytes behind a key never change.
    """
    try:
        stored = await uploader.download(key)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail="Not found")
    except UploadError:
        raise HTTPException(status_code=500, detail="Internal server error")

    headers = {"Cache-Control": settings.cache_control}
    if stored.size is not None:
        headers["Content-Length"] = str(stored.size)

    return StreamingResponse(stored.chunks, media_type=stored.content_type, headers=headers)
