"""
Blob Upload API Endpoint.

Stores signature images and delivery photos, returning the reference that
complete-delivery expects.
"""

import base64
import binascii
from fastapi import APIRouter, Depends, status
from courier_backend.app.core.exceptions import ValidationError
from courier_backend.app.core.guards import require_role
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.blob import BlobUpload, BlobReference
from courier_backend.app.services.blob_store import BlobStore, get_blob_store

router = APIRouter(prefix="/blobs", tags=["Blobs"])


@router.post("", response_model=BlobReference, status_code=status.HTTP_201_CREATED)
async def upload_blob(
    upload: BlobUpload,
    principal: Principal = Depends(require_role([UserRole.ADMIN, UserRole.AGENT])),
    store: BlobStore = Depends(get_blob_store)
):
    try:
        data = base64.b64decode(upload.content_base64, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError.for_field("content_base64", "Payload is not valid base64")

    ref = await store.put(data, upload.content_type)
    return BlobReference(ref=ref, size=len(data))
