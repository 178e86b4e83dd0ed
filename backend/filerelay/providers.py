"""
Provider clients shared by all requests.

Clients are built once during application startup from the immutable
settings, kept on app.state and handed to route handlers through the
dependency functions below. Tests swap them with app.dependency_overrides.
"""
from dataclasses import dataclass

from fastapi import Depends, Request

from filerelay.auth.identity import SupabaseIdentityClient
from filerelay.config import Settings
from filerelay.services.file_service import FileService
from filerelay.services.payment_service import PaymentService
from filerelay.storage.s3_client import StorageClient


@dataclass(frozen=True)
class Providers:
    identity: SupabaseIdentityClient
    storage: StorageClient
    payments: PaymentService
    
    async def aclose(self) -> None:
        await self.identity.aclose()
        self.storage.close()


def build_providers(settings: Settings) -> Providers:
    """Construct every provider client from settings."""
    identity = SupabaseIdentityClient(
        base_url=settings.supabase_url,
        api_key=settings.supabase_key,
        email_domain=settings.auth_email_domain,
        timeout=settings.provider_timeout_seconds,
    )
    storage = StorageClient(
        endpoint_url=settings.storage_endpoint,
        access_key=settings.storage_access_key,
        secret_key=settings.storage_secret_key,
        bucket=settings.supabase_bucket,
        public_base_url=settings.public_storage_base_url,
        region=settings.storage_region,
        api_url=settings.supabase_url,
        api_key=settings.supabase_key,
        timeout=settings.provider_timeout_seconds,
    )
    payments = PaymentService(
        api_key=settings.stripe_secret_key,
        product_id=settings.stripe_product_id,
        return_url=settings.payment_return_url,
        cancel_url=settings.payment_cancel_url,
        webhook_secret=settings.stripe_webhook_secret,
    )
    return Providers(identity=identity, storage=storage, payments=payments)


def get_identity_client(request: Request) -> SupabaseIdentityClient:
    return request.app.state.providers.identity


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.providers.storage


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.providers.payments


def get_file_service(storage: StorageClient = Depends(get_storage_client)) -> FileService:
    return FileService(storage)
