"""
Test configuration and fixtures.
Providers are replaced with in-memory fakes that record every call.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = "https://project.supabase.co"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["SUPABASE_BUCKET"] = "uploads"
os.environ["STORAGE_ACCESS_KEY"] = "test-access-key"
os.environ["STORAGE_SECRET_KEY"] = "test-secret-key"
os.environ["MAX_UPLOAD_BYTES"] = str(64 * 1024)

from typing import AsyncGenerator, Dict, Tuple

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from filerelay.models.account import Account
from filerelay.services.file_service import FileService
from filerelay.services.payment_service import PaymentService
from fakes import FakeIdentity, FakeStorage, ticking_clock


@pytest.fixture
def fake_identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def payment_service() -> PaymentService:
    return PaymentService(
        api_key="sk_test_123",
        product_id="prod_default",
        return_url="https://app.test/payment/success",
    )


@pytest.fixture
def account_and_token(fake_identity: FakeIdentity) -> Tuple[Account, str]:
    return fake_identity.add_account("alice", "secret1")


@pytest.fixture
def auth_headers(account_and_token) -> Dict[str, str]:
    return {"Authorization": f"Bearer {account_and_token[1]}"}


def get_test_app(
    fake_identity: FakeIdentity,
    fake_storage: FakeStorage,
    payment_service: PaymentService,
) -> FastAPI:
    """Return the app with provider dependencies overridden."""
    from filerelay.main import app
    from filerelay.providers import (
        get_file_service,
        get_identity_client,
        get_payment_service,
        get_storage_client,
    )
    
    app.dependency_overrides[get_identity_client] = lambda: fake_identity
    app.dependency_overrides[get_storage_client] = lambda: fake_storage
    # One service per app so its clock keeps ticking across requests
    file_service = FileService(fake_storage, clock=ticking_clock())
    
    app.dependency_overrides[get_file_service] = lambda: file_service
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    
    return app


@pytest.fixture
async def client(
    fake_identity: FakeIdentity,
    fake_storage: FakeStorage,
    payment_service: PaymentService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(fake_identity, fake_storage, payment_service)
    
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    
    # Clean up overrides
    app.dependency_overrides.clear()
