"""
Pydantic schemas for upload and listing endpoints.
"""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class FileResponse(BaseModel):
    """A stored file."""
    name: str = Field(..., description="Original (or display) filename")
    size: int = Field(..., description="Size in bytes")
    type: Optional[str] = Field(None, description="MIME type")
    path: str = Field(..., description="Storage key inside the bucket")
    url: str = Field(..., description="Public URL")
    created_at: Optional[datetime] = None
    etag: Optional[str] = None


class UploadResponse(BaseModel):
    message: str
    file: FileResponse


class FileListResponse(BaseModel):
    files: List[FileResponse]
