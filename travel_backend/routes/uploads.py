"""
Admin image upload to the hosted image service.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from travel_backend.auth import require_admin
from travel_backend.dependencies import get_image_host
from travel_backend.errors import ValidationError
from travel_backend.media import MAX_ADMIN_IMAGE_BYTES, ImageHost, validate_image
from travel_backend.schemas import envelope
from travel_backend.security import Identity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload")
async def upload_image(
    file: UploadFile = File(None),
    admin: Identity = Depends(require_admin),
    host: ImageHost = Depends(get_image_host),
):
    if file is None:
        raise ValidationError("No file provided")
    data = await file.read()
    validate_image(file.content_type, len(data), MAX_ADMIN_IMAGE_BYTES)

    url = await run_in_threadpool(host.upload, data, file.content_type)
    logger.info("Admin %s uploaded image %s", admin.id, url)
    return envelope(path=url, url=url, message="File uploaded successfully")
