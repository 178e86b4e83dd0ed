"""
File relay service.
Derives storage keys and forwards uploads and listings to the storage bucket.
"""
import logging
import mimetypes
import re
import time
from typing import Callable, List, Optional

from starlette.concurrency import run_in_threadpool

from filerelay.errors import BadRequest
from filerelay.models.file_object import FileObject
from filerelay.storage.s3_client import StorageClient
from filerelay.utils.logging import log_files_listed, log_upload_completed
from filerelay.utils.metrics import (
    provider_failures_total,
    provider_latency_seconds,
    upload_bytes_total,
    uploads_total,
)

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100
KEY_SEPARATOR = "_"

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_KEY_PREFIX = re.compile(r"^\d+" + KEY_SEPARATOR)


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore."""
    return _UNSAFE_KEY_CHARS.sub("_", filename)


def derive_storage_key(filename: str, now_ms: Optional[int] = None) -> str:
    """
    Build the storage key for an upload: <epoch-ms>_<sanitized name>.
    
    Two uploads of the same name in the same millisecond produce the same
    key; the bucket refuses the second write.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}{KEY_SEPARATOR}{sanitize_filename(filename)}"


def display_name(storage_key: str) -> str:
    """Filename shown for a key: the key without its timestamp prefix."""
    return _KEY_PREFIX.sub("", storage_key, count=1)


class FileService:
    """Upload and listing operations against one bucket."""
    
    def __init__(self, storage: StorageClient, clock: Callable[[], float] = time.time):
        self.storage = storage
        self._clock = clock
    
    async def upload(
        self,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
        user_id: Optional[str] = None,
    ) -> FileObject:
        """
        Store one file and describe it.
        
        Args:
            filename: Original filename from the multipart part
            content: File bytes
            content_type: Declared MIME type
            user_id: Uploading account, when authenticated
            
        Raises:
            BadRequest: no file provided
            StorageError: bucket rejected the write
        """
        if not filename:
            raise BadRequest("No file provided")
        
        start_time = self._clock()
        storage_key = derive_storage_key(filename, now_ms=int(start_time * 1000))
        
        try:
            path = await run_in_threadpool(
                self.storage.put_object,
                storage_key,
                content,
                content_type,
            )
        except Exception:
            provider_failures_total.labels(provider="supabase-storage", operation="upload").inc()
            raise
        finally:
            provider_latency_seconds.labels(
                provider="supabase-storage", operation="upload"
            ).observe(self._clock() - start_time)
        
        uploads_total.inc()
        upload_bytes_total.inc(len(content))
        log_upload_completed(
            logger,
            storage_key=path,
            size=len(content),
            user_id=user_id,
            duration_ms=(self._clock() - start_time) * 1000,
            bucket=self.storage.bucket,
        )
        
        return FileObject(
            name=filename,
            size=len(content),
            type=content_type,
            path=path,
            url=self.storage.public_url(path),
        )
    
    async def list_files(self, user_id: Optional[str] = None) -> List[FileObject]:
        """
        Newest stored files (at most LIST_PAGE_SIZE) with public URLs.
        
        An empty bucket yields an empty list.
        
        Raises:
            StorageError: listing failed
        """
        start_time = self._clock()
        try:
            objects = await run_in_threadpool(self.storage.list_objects, LIST_PAGE_SIZE)
        except Exception:
            provider_failures_total.labels(provider="supabase-storage", operation="list").inc()
            raise
        finally:
            provider_latency_seconds.labels(
                provider="supabase-storage", operation="list"
            ).observe(self._clock() - start_time)
        
        files = []
        for obj in objects:
            name = display_name(obj.key)
            files.append(FileObject(
                name=name,
                size=obj.size,
                type=obj.content_type or mimetypes.guess_type(name)[0],
                path=obj.key,
                url=self.storage.public_url(obj.key),
                created_at=obj.last_modified,
                etag=obj.etag,
            ))
        
        log_files_listed(
            logger,
            count=len(files),
            user_id=user_id,
            duration_ms=(self._clock() - start_time) * 1000,
        )
        return files
