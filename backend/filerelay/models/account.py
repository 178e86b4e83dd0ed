"""
Account records resolved by the identity provider.
The relay never stores accounts; they are rebuilt from provider payloads.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Account:
    """An identity provider account as seen by this service."""
    id: str
    username: str
    email: Optional[str] = None
    
    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> "Account":
        """Build from a Supabase user object."""
        metadata = payload.get("user_metadata") or {}
        email = payload.get("email")
        username = metadata.get("username")
        if not username and email:
            username = email.split("@", 1)[0]
        return cls(id=str(payload["id"]), username=username or "", email=email)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass(frozen=True)
class AuthSession:
    """Bearer token pair issued by the identity provider."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    token_type: str = "bearer"
    
    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> Optional["AuthSession"]:
        """Build from a token response; None when no token was issued."""
        if not payload.get("access_token"):
            return None
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            expires_at=payload.get("expires_at"),
            token_type=payload.get("token_type") or "bearer",
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
            "token_type": self.token_type,
        }
