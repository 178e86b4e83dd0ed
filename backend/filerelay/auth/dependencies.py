"""
FastAPI dependencies for authentication.
Provides the bearer-token guard that resolves accounts through the identity provider.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from filerelay.auth.identity import SupabaseIdentityClient
from filerelay.config import settings
from filerelay.errors import RelayError, Unauthorized
from filerelay.models.account import Account
from filerelay.providers import get_identity_client
from filerelay.utils.logging import log_auth_event
from filerelay.utils.metrics import auth_attempts_total

logger = logging.getLogger(__name__)

# auto_error is off so a missing header renders as our own 401 body
security = HTTPBearer(auto_error=False)


async def get_current_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentityClient = Depends(get_identity_client),
) -> Account:
    """
    FastAPI dependency that resolves the bearer token to an Account.
    
    Flow:
    1. Extract Bearer token from Authorization header
    2. Resolve it with the identity provider (one call, no cache)
    3. Attach the account to request.state.account
    
    Raises:
        Unauthorized: header missing or malformed (no provider call made),
            or token rejected, or the provider failed
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("No token provided")
    
    try:
        account = await identity.get_user(credentials.credentials)
    except RelayError as e:
        auth_attempts_total.labels(action="verify", outcome="rejected").inc()
        log_auth_event(logger, "verify", success=False, reason=str(e.details or e.error))
        raise Unauthorized("Invalid or expired token") from e
    
    auth_attempts_total.labels(action="verify", outcome="accepted").inc()
    request.state.account = account
    return account


async def get_optional_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentityClient = Depends(get_identity_client),
) -> Optional[Account]:
    """Like get_current_account, but resolves to None when no token is sent."""
    if credentials is None or not credentials.credentials:
        return None
    return await get_current_account(request, credentials, identity)


async def get_file_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentityClient = Depends(get_identity_client),
) -> Optional[Account]:
    """Guard for upload/list: required unless REQUIRE_AUTH_FOR_FILES is off."""
    if settings.require_auth_for_files:
        return await get_current_account(request, credentials, identity)
    return await get_optional_account(request, credentials, identity)


async def get_payment_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentityClient = Depends(get_identity_client),
) -> Optional[Account]:
    """
    Guard for checkout/verify.
    
    With REQUIRE_AUTH_FOR_PAYMENTS off the caller's identity is not resolved
    at all and checkout is created anonymously.
    """
    if settings.require_auth_for_payments:
        return await get_current_account(request, credentials, identity)
    return None
