"""
Blob upload schemas.
"""

from pydantic import BaseModel, Field


class BlobUpload(BaseModel):
    """Base64 payload for a signature image or delivery photo."""
    content_base64: str = Field(..., min_length=1)
    content_type: str = Field("image/png", max_length=100)


class BlobReference(BaseModel):
    ref: str
    size: int
