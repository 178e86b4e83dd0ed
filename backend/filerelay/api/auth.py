"""
Auth endpoints.
Relays signup, login, token verification and logout to the identity provider.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials

from filerelay.auth.credentials import validate_password, validate_username
from filerelay.auth.dependencies import get_current_account, security
from filerelay.auth.identity import SupabaseIdentityClient
from filerelay.errors import RelayError
from filerelay.models.account import Account
from filerelay.providers import get_identity_client
from filerelay.schemas.auth import (
    AuthResponse,
    CredentialsRequest,
    MessageResponse,
    VerifyResponse,
)
from filerelay.utils.logging import log_auth_event
from filerelay.utils.metrics import auth_attempts_total

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/signup", response_model=AuthResponse)
async def signup(
    request: CredentialsRequest,
    identity: SupabaseIdentityClient = Depends(get_identity_client),
):
    """
    Create an account.
    
    Username and password rules are checked before the provider is called.
    The session is null when the provider requires confirmation first.
    """
    username = validate_username(request.username)
    password = validate_password(request.password)
    
    try:
        account, session = await identity.sign_up(username, password)
    except RelayError as e:
        auth_attempts_total.labels(action="signup", outcome="rejected").inc()
        log_auth_event(logger, "signup", username=username, success=False, reason=str(e.details or e.error))
        raise
    
    auth_attempts_total.labels(action="signup", outcome="accepted").inc()
    log_auth_event(logger, "signup", username=username, user_id=account.id)
    return {
        "message": "Account created successfully",
        "user": account.to_dict(),
        "session": session.to_dict() if session else None,
    }


@router.post("/login", response_model=AuthResponse)
async def login(
    request: CredentialsRequest,
    identity: SupabaseIdentityClient = Depends(get_identity_client),
):
    """Exchange username/password for a bearer token."""
    try:
        account, session = await identity.sign_in(request.username.strip(), request.password)
    except RelayError as e:
        auth_attempts_total.labels(action="login", outcome="rejected").inc()
        log_auth_event(logger, "login", username=request.username, success=False, reason=e.error)
        raise
    
    auth_attempts_total.labels(action="login", outcome="accepted").inc()
    log_auth_event(logger, "login", username=account.username, user_id=account.id)
    return {
        "message": "Login successful",
        "user": account.to_dict(),
        "session": session.to_dict(),
    }


@router.get("/verify", response_model=VerifyResponse)
async def verify(current_account: Account = Depends(get_current_account)):
    """Return the account behind the bearer token."""
    return {"user": current_account.to_dict()}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentityClient = Depends(get_identity_client),
):
    """
    Revoke the session when a token is sent.
    
    Best effort: provider failures are logged and the client is told it is
    logged out either way, since it discards its token regardless.
    """
    if credentials is not None and credentials.credentials:
        try:
            await identity.sign_out(credentials.credentials)
            log_auth_event(logger, "logout")
        except RelayError as e:
            log_auth_event(logger, "logout", success=False, reason=str(e.details or e.error))
    
    return {"message": "Logged out successfully"}
