"""
Media router — image uploads for avatars, question pictures and announcements.

Endpoints:
    POST /uploads   → store an image, return its public URL
"""

import asyncio

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from chgk_portal.config import settings
from chgk_portal.models.user import User
from chgk_portal.routers.auth import require_viewer
from chgk_portal.services import storage

router = APIRouter(prefix="/uploads", tags=["media"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    current_user: User = Depends(require_viewer),
):
    # Read at most one byte past the limit
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    try:
        url = await asyncio.to_thread(
            storage.upload, current_user.id, file.filename or "", file.content_type, data
        )
    except storage.UploadRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    if url is None:
        raise HTTPException(status_code=500, detail="Upload failed")
    return {"url": url}
