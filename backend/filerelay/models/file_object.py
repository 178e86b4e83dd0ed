"""
Stored file descriptor.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FileObject:
    """
    A blob stored in the bucket.
    
    name is the caller-facing filename, path the storage key.
    Objects are immutable once stored.
    """
    name: str
    size: int
    type: Optional[str]
    path: str
    url: str
    created_at: Optional[datetime] = None
    etag: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "path": self.path,
            "url": self.url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "etag": self.etag,
        }
