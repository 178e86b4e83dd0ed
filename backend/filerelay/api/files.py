"""
File endpoints.

POST /upload relays one multipart file into the storage bucket.
GET /files lists the newest stored files with their public URLs.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from filerelay.auth.dependencies import get_file_account
from filerelay.errors import BadRequest
from filerelay.models.account import Account
from filerelay.providers import get_file_service
from filerelay.schemas.file import FileListResponse, UploadResponse
from filerelay.services.file_service import FileService

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None, description="File to store"),
    current_account: Optional[Account] = Depends(get_file_account),
    files: FileService = Depends(get_file_service),
):
    """
    Store a single file.
    
    The payload size limit is enforced by middleware before this runs.
    Storage failures come back as 500 with the provider message, bucket
    name and a hint.
    """
    if file is None or not file.filename:
        raise BadRequest("No file provided")
    
    content = await file.read()
    stored = await files.upload(
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        user_id=current_account.id if current_account else None,
    )
    
    return {
        "message": "File uploaded successfully",
        "file": stored.to_dict(),
    }


@router.get("/files", response_model=FileListResponse)
async def list_files(
    current_account: Optional[Account] = Depends(get_file_account),
    files: FileService = Depends(get_file_service),
):
    """List up to 100 files, newest first. An empty bucket is not an error."""
    stored = await files.list_files(user_id=current_account.id if current_account else None)
    return {"files": [f.to_dict() for f in stored]}
