"""
Storage module for the S3-compatible object storage bucket.

Uploaded files are relayed through the API into the bucket; listings and
public URLs are read back from the same bucket.
"""
from filerelay.storage.s3_client import StorageClient, StoredObject

__all__ = ["StorageClient", "StoredObject"]
