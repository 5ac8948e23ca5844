"""
Fadetrack Backend: Image Upload & Storage Routes
================================================

    POST /api/uploadImage              multipart `file` (+ optional `folder`)
    GET  /storage/{bucket}/{path}      serve a stored object

Type and size are checked from the multipart headers before the body is
read, and again on the bytes; nothing is written unless every check
passes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from fadetrack.exceptions import ValidationError
from fadetrack.schemas.common import ErrorResponse
from fadetrack.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


class UploadResponse(BaseModel):
    success: bool = True
    url: str
    path: str


@router.post(
    "/api/uploadImage",
    response_model=UploadResponse,
    responses={
        400: {"description": "Missing file, wrong type or over 5MB", "model": ErrorResponse},
        500: {"description": "Storage write failed", "model": ErrorResponse},
    },
    summary="Upload a portfolio or profile image",
)
async def upload_image(
    file: Optional[UploadFile] = File(default=None, description="JPEG, PNG, WebP or GIF, max 5MB"),
    folder: Optional[str] = Form(default=None),
) -> UploadResponse:
    if file is None:
        raise ValidationError("No file provided", field="file")

    try:
        storage_service.validate_content_type(file.content_type)
        if file.size is not None:
            storage_service.validate_size(file.size, file.size)
        content = await file.read()
        logger.info("Upload received: %s (%d bytes)", file.filename or "unnamed", len(content))
        stored = await storage_service.save_image(
            content=content,
            content_type=file.content_type,
            folder=folder,
            content_length=file.size,
        )
    finally:
        await file.close()

    return UploadResponse(url=stored["url"], path=stored["path"])


@router.get(
    "/storage/{bucket}/{file_path:path}",
    responses={404: {"description": "Object not found", "model": ErrorResponse}},
    summary="Serve a stored object",
)
async def serve_object(bucket: str, file_path: str) -> FileResponse:
    full_path = storage_service.resolve(bucket, file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
