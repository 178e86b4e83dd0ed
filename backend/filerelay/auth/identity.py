"""
Supabase Auth (GoTrue) client.

Relays signup, password login, token resolution and logout to the identity
provider's REST API. Created once at application startup and shared by all
requests; it holds no per-request state.
"""
import logging
import time
from typing import Any, Callable, Optional, Tuple, TypeVar

import httpx

from filerelay.auth.credentials import email_for_username
from filerelay.errors import (
    BadRequest,
    IdentityProviderError,
    RateLimited,
    Unauthorized,
)
from filerelay.models.account import Account, AuthSession
from filerelay.utils.logging import log_provider_failure
from filerelay.utils.metrics import provider_failures_total, provider_latency_seconds

logger = logging.getLogger(__name__)

PROVIDER = "supabase-auth"

T = TypeVar("T")


def _provider_message(response: httpx.Response) -> str:
    """Pull a human readable message out of a GoTrue error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if not isinstance(body, dict):
        return str(body)
    for key in ("msg", "error_description", "message", "error"):
        if body.get(key):
            return str(body[key])
    return f"HTTP {response.status_code}"


class SupabaseIdentityClient:
    """
    Thin async wrapper over the GoTrue endpoints used by the relay.
    
    Every call is a single request; nothing is retried or cached.
    """
    
    def __init__(
        self,
        base_url: str,
        api_key: str,
        email_domain: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.email_domain = email_domain
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            headers={"apikey": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
    
    async def aclose(self) -> None:
        await self._client.aclose()
    
    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        start_time = time.time()
        try:
            return await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            provider_failures_total.labels(provider=PROVIDER, operation=operation).inc()
            log_provider_failure(logger, PROVIDER, operation, str(e))
            raise IdentityProviderError(
                "Identity provider unavailable",
                details=str(e),
            ) from e
        finally:
            provider_latency_seconds.labels(provider=PROVIDER, operation=operation).observe(
                time.time() - start_time
            )
    
    def _raise_for_signup(self, response: httpx.Response) -> None:
        message = _provider_message(response)
        if response.status_code == 429:
            raise RateLimited("Too many signup attempts", details=message)
        if 400 <= response.status_code < 500:
            raise BadRequest("Failed to create account", details=message)
        provider_failures_total.labels(provider=PROVIDER, operation="signup").inc()
        log_provider_failure(logger, PROVIDER, "signup", message, status=response.status_code)
        raise IdentityProviderError("Failed to create account", details=message)
    
    def _parse(self, operation: str, response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Apply parse to the JSON body; a malformed success body is a provider failure."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            message = f"Unexpected response body: {e!r}"
            provider_failures_total.labels(provider=PROVIDER, operation=operation).inc()
            log_provider_failure(logger, PROVIDER, operation, message, status=response.status_code)
            raise IdentityProviderError("Unexpected identity provider response", details=message) from e
    
    async def sign_up(self, username: str, password: str) -> Tuple[Account, Optional[AuthSession]]:
        """
        Create an account for username.
        
        Returns the account and its session. The session is None when the
        provider requires email confirmation before issuing tokens.
        """
        response = await self._request(
            "signup",
            "POST",
            "/signup",
            json={
                "email": email_for_username(username, self.email_domain),
                "password": password,
                "data": {"username": username},
            },
        )
        if response.status_code >= 400:
            self._raise_for_signup(response)
        
        # Autoconfirm projects answer with a token payload, others with the bare user
        return self._parse(
            "signup",
            response,
            lambda body: (Account.from_provider(body.get("user") or body), AuthSession.from_provider(body)),
        )
    
    async def sign_in(self, username: str, password: str) -> Tuple[Account, AuthSession]:
        """Exchange username/password for a session."""
        response = await self._request(
            "login",
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={
                "email": email_for_username(username, self.email_domain),
                "password": password,
            },
        )
        if response.status_code == 429:
            raise RateLimited("Too many login attempts", details=_provider_message(response))
        if 400 <= response.status_code < 500:
            raise Unauthorized("Invalid username or password")
        if response.status_code >= 500:
            message = _provider_message(response)
            provider_failures_total.labels(provider=PROVIDER, operation="login").inc()
            log_provider_failure(logger, PROVIDER, "login", message, status=response.status_code)
            raise IdentityProviderError("Failed to login", details=message)
        
        account, session = self._parse(
            "login",
            response,
            lambda body: (Account.from_provider(body["user"]), AuthSession.from_provider(body)),
        )
        if session is None:
            raise IdentityProviderError("Failed to login", details="Provider issued no access token")
        return account, session
    
    async def get_user(self, token: str) -> Account:
        """
        Resolve the account a bearer token belongs to.
        
        Raises:
            Unauthorized: token rejected by the provider
            IdentityProviderError: provider unreachable or failing
        """
        response = await self._request("verify", "GET", "/user", token=token)
        if 400 <= response.status_code < 500:
            raise Unauthorized("Invalid or expired token", details=_provider_message(response))
        if response.status_code >= 400:
            raise IdentityProviderError("Token verification failed", details=_provider_message(response))
        return self._parse("verify", response, Account.from_provider)
    
    async def sign_out(self, token: str) -> None:
        """Revoke the session behind token."""
        response = await self._request("logout", "POST", "/logout", token=token)
        if response.status_code >= 400:
            raise IdentityProviderError("Logout failed", details=_provider_message(response))
