import base64
import binascii
import os
import uuid as uuid_mod
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, status, Form
from fastapi.responses import JSONResponse, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.logger import get_logger
from db.database import get_async_session
from db.image import Image
from db.users import User

router = APIRouter()
logger = get_logger("routers.images")

MIN_IMAGE_BYTES = 100
MAX_IMAGE_BYTES = 25 * 1024 * 1024

EXT_TO_CONTENT_TYPE = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
}


def _check_size(data: bytes):
    if len(data) < MIN_IMAGE_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image file appears to be corrupted or too small")
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image size must be less than 25MB")


def _file_content_type(file: UploadFile) -> str:
    content_type = (file.content_type or "").strip().lower()
    ext = os.path.splitext(file.filename or "")[1].lower().lstrip(".")
    if content_type and content_type != "application/octet-stream":
        if not content_type.startswith("image/"):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
        return content_type
    if ext and ext not in EXT_TO_CONTENT_TYPE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
    return EXT_TO_CONTENT_TYPE.get(ext, "image/jpeg")


def _decode_data_url(value: str):
    """'data:image/png;base64,....' or bare base64 -> (bytes, content type)"""
    content_type = "image/jpeg"
    if "," in value:
        prefix, value = value.split(",", 1)
        if prefix.startswith("data:") and ";" in prefix:
            content_type = prefix.split(";")[0].replace("data:", "").strip() or content_type
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
    try:
        return base64.b64decode(value, validate=True), content_type
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base64 image")


@router.post("/upload")
async def upload_image(
    file: Optional[UploadFile] = File(None),
    base64_image: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Store a recipe picture in the database.
    Accepts either a file upload or a base64 (data URL) string and returns
    the path that serves it (/images/serve/{id}).
    """
    if file:
        data = await file.read()
        content_type = _file_content_type(file)
        filename = file.filename or f"image_{uuid_mod.uuid4().hex[:8]}.jpg"
    elif base64_image:
        data, content_type = _decode_data_url(base64_image)
        filename = f"image_{uuid_mod.uuid4().hex[:8]}.{content_type.split('/')[-1]}"
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either 'file' or 'base64_image' must be provided",
        )
    _check_size(data)

    image_id = uuid_mod.uuid4()
    try:
        db.add(Image(id=image_id, filename=filename, content_type=content_type, data=data, uploaded_by=user.id))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to store image %s", filename)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image")

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"url": f"/images/serve/{image_id}", "id": str(image_id), "name": filename},
    )


@router.get("/serve/{image_id}", response_class=Response)
async def serve_image(
    image_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    """No auth so an <img src> can load it."""
    result = await db.execute(select(Image).where(Image.id == image_id))
    row = result.scalar_one_or_none()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return Response(content=bytes(row.data), media_type=row.content_type)
