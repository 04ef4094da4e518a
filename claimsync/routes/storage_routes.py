"""Signed attachment download route."""

import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from common.logging_config import get_logger
from claimsync.dependencies import get_storage
from claimsync.exceptions import StorageError
from claimsync.storage import StorageService

logger = get_logger(__name__)

router = APIRouter(prefix="/storage/v1/object/sign", tags=["Storage"])


@router.get("/{bucket}/{object_path:path}")
async def download_signed_object(
    bucket: str,
    object_path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    storage: StorageService = Depends(get_storage)
):
    """
    Serve an attachment through a signed URL.

    Raises:
        - 403: Signature invalid or expired
        - 404: Unknown bucket or object
    """
    if bucket != storage.bucket:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bucket not found")

    if not storage.verify_signature(object_path, expires, signature):
        logger.warning(f"Rejected signed download for {object_path}: invalid or expired signature")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired signature")

    try:
        content = storage.read_object(object_path)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    media_type = mimetypes.guess_type(object_path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
