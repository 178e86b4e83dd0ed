"""
Storage client for Supabase Storage.

Writes go through boto3 against the project's S3 endpoint. Listings use the
Storage REST API, which can sort by creation time and cap the page server
side. Objects are publicly readable through the bucket's public URL prefix;
the client only builds those URLs and never signs them.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import boto3
import httpx
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, TypeAdapter

from filerelay.errors import StorageError

logger = logging.getLogger(__name__)

UPLOAD_HINT = "Check if the bucket exists and has correct permissions in Supabase Storage"

# Supabase keeps empty "folders" alive with this object
PLACEHOLDER_NAME = ".emptyFolderPlaceholder"


@dataclass(frozen=True)
class StoredObject:
    """One entry of a bucket listing."""
    key: str
    size: int
    last_modified: Optional[datetime]
    etag: Optional[str] = None
    content_type: Optional[str] = None


class ListedObject(BaseModel):
    """Entry of a Storage REST listing. Folders come back without an id."""
    name: str
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


_listing = TypeAdapter(List[ListedObject])


def _listing_error(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
    return str(body)


class StorageClient:
    """
    Client bound to one bucket.
    
    All methods are blocking; async callers run them in the threadpool.
    """
    
    def __init__(
        self,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        public_base_url: str,
        region: str = "us-east-1",
        client=None,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the S3 and REST clients.
        
        Args:
            endpoint_url: S3 endpoint, e.g. https://<project>.supabase.co/storage/v1/s3
            access_key: S3 access key id
            secret_key: S3 secret access key
            bucket: Bucket name
            public_base_url: Prefix for public object URLs
            region: Region name sent in signatures
            client: Pre-built boto3 client (tests)
            api_url: Project URL, e.g. https://<project>.supabase.co
            api_key: Project API key for the Storage REST API
            timeout: REST request timeout in seconds
            http_client: Pre-built httpx client (tests)
        """
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        
        if client is not None:
            self._client = client
        else:
            # No retries anywhere in the relay
            self._client = boto3.client(
                's3',
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path'},  # Supabase uses path-style
                    retries={'total_max_attempts': 1, 'mode': 'standard'},
                )
            )
        
        if http_client is not None:
            self._http = http_client
        else:
            self._http = httpx.Client(
                base_url=f"{api_url.rstrip('/')}/storage/v1" if api_url else "",
                headers={"apikey": api_key or "", "Authorization": f"Bearer {api_key or ''}"},
                timeout=timeout,
            )
        logger.info(f"Storage client initialized for bucket: {bucket}")
    
    def close(self) -> None:
        self._http.close()
    
    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._bucket
    
    def public_url(self, object_key: str) -> str:
        """Public, unauthenticated URL for an object."""
        return f"{self._public_base_url}/{object_key}"
    
    def put_object(
        self,
        object_key: str,
        body: bytes,
        content_type: Optional[str],
        cache_control: str = "max-age=3600",
    ) -> str:
        """
        Store body under object_key without replacing an existing object.
        
        Args:
            object_key: Key inside the bucket
            body: File bytes
            content_type: Declared MIME type
            cache_control: Cache-Control header stored with the object
            
        Returns:
            The storage key
            
        Raises:
            StorageError: provider rejected the write (including key conflicts)
        """
        params = {
            'Bucket': self._bucket,
            'Key': object_key,
            'Body': body,
            'CacheControl': cache_control,
            'IfNoneMatch': '*',  # Overwrite disabled
        }
        if content_type:
            params['ContentType'] = content_type
        
        try:
            self._client.put_object(**params)
        except ClientError as e:
            error = e.response.get('Error', {})
            code = error.get('Code')
            message = error.get('Message') or str(e)
            status_code = e.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
            logger.error(f"Failed to upload {object_key} to bucket {self._bucket}: {code} {message}")
            if code in ('PreconditionFailed', 'ConditionalRequestConflict') or status_code in (409, 412):
                message = f"An object already exists at {object_key}"
            raise StorageError(
                "Failed to upload file to storage",
                details=message,
                hint=UPLOAD_HINT,
                extra={"errorCode": code or status_code, "bucket": self._bucket},
            ) from e
        except BotoCoreError as e:
            logger.error(f"Storage unreachable while uploading {object_key}: {e}")
            raise StorageError(
                "Failed to upload file to storage",
                details=str(e),
                hint=UPLOAD_HINT,
                extra={"bucket": self._bucket},
            ) from e
        
        logger.debug(f"Stored {object_key} ({len(body)} bytes)")
        return object_key
    
    def list_objects(self, limit: int = 100) -> List[StoredObject]:
        """
        List up to limit objects at the bucket root, newest first.
        
        Sorting and the page cap are applied by the provider, so the cost
        does not grow with the bucket.
        
        Raises:
            StorageError: listing failed
        """
        try:
            response = self._http.post(
                f"/object/list/{self._bucket}",
                json={
                    "prefix": "",
                    "limit": limit,
                    "offset": 0,
                    "sortBy": {"column": "created_at", "order": "desc"},
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Storage unreachable while listing {self._bucket}: {e}")
            raise StorageError("Failed to list files", details=str(e)) from e
        
        if response.status_code >= 400:
            message = _listing_error(response)
            logger.error(f"Failed to list bucket {self._bucket}: {response.status_code} {message}")
            raise StorageError("Failed to list files", details=message)
        
        try:
            entries = _listing.validate_python(response.json())
        except ValueError as e:
            logger.error(f"Unreadable listing for bucket {self._bucket}: {e}")
            raise StorageError("Failed to list files", details=f"Unexpected listing response: {e}") from e
        
        objects: List[StoredObject] = []
        for entry in entries:
            if entry.id is None or entry.name.endswith(PLACEHOLDER_NAME):
                continue
            metadata = entry.metadata or {}
            objects.append(StoredObject(
                key=entry.name,
                size=int(metadata.get("size") or metadata.get("contentLength") or 0),
                last_modified=entry.created_at,
                etag=(metadata.get("eTag") or "").strip('"') or None,
                content_type=metadata.get("mimetype"),
            ))
        return objects[:limit]
