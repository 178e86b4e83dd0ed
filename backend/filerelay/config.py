"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Supabase (identity + storage)
    supabase_url: Optional[str] = None  # e.g., https://<project>.supabase.co
    supabase_key: Optional[str] = None  # anon or service role key
    supabase_bucket: str = "uploads"
    
    # Supabase Storage S3-compatible endpoint
    # Defaults to <supabase_url>/storage/v1/s3 when not set
    storage_s3_endpoint: Optional[str] = None
    storage_access_key: Optional[str] = None
    storage_secret_key: Optional[str] = None
    storage_region: str = "us-east-1"
    
    # Accounts are username based; the identity provider needs an email
    auth_email_domain: str = "users.filerelay.app"
    
    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_product_id: Optional[str] = None  # Product sold by /checkout/create
    stripe_webhook_secret: Optional[str] = None  # Webhook signing secret
    payment_return_url: str = "http://localhost:3001/payment/success"
    payment_cancel_url: Optional[str] = None  # Falls back to payment_return_url
    
    # Server
    port: int = 3001
    environment: str = "development"
    reload: bool = False  # uvicorn auto-reload, local development only
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    max_upload_bytes: int = 50 * 1024 * 1024  # 50MB
    provider_timeout_seconds: float = 10.0
    
    # Protected variants
    require_auth_for_files: bool = True
    require_auth_for_payments: bool = True
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )
    
    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"
    
    @property
    def storage_endpoint(self) -> Optional[str]:
        """S3 endpoint for the storage bucket."""
        if self.storage_s3_endpoint:
            return self.storage_s3_endpoint
        if self.supabase_url:
            return f"{self.supabase_url.rstrip('/')}/storage/v1/s3"
        return None
    
    @property
    def public_storage_base_url(self) -> str:
        """Base URL for unauthenticated reads of public bucket objects."""
        return f"{(self.supabase_url or '').rstrip('/')}/storage/v1/object/public/{self.supabase_bucket}"
    
    def missing_startup_settings(self) -> List[str]:
        """
        Names of settings the server cannot start without.
        
        Payment settings are not listed: checkout reports a
        ConfigurationError per request instead.
        """
        required = {
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_KEY": self.supabase_key,
            "STORAGE_ACCESS_KEY": self.storage_access_key,
            "STORAGE_SECRET_KEY": self.storage_secret_key,
        }
        return [name for name, value in required.items() if not value]


# Global settings instance
settings = Settings()
