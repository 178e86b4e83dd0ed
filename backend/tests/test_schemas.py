"""
Tests for schemas, models and the error taxonomy.
"""
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from filerelay.auth.credentials import email_for_username, validate_password, validate_username
from filerelay.errors import BadRequest, PayloadTooLarge, StorageError, Unauthorized
from filerelay.models.account import Account, AuthSession
from filerelay.models.checkout import WebhookEvent, WebhookEventKind
from filerelay.models.file_object import FileObject
from filerelay.schemas.file import FileResponse
from filerelay.schemas.payment import CheckoutRequest


class TestCredentials:
    """Tests for username/password rules."""
    
    @pytest.mark.parametrize("username", ["abc", "alice_01", "A" * 30])
    def test_valid_usernames(self, username):
        assert validate_username(username) == username
    
    @pytest.mark.parametrize("username", ["ab", "A" * 31, "al ice", "alice!", "", None])
    def test_invalid_usernames(self, username):
        with pytest.raises(BadRequest) as exc_info:
            validate_username(username)
        assert exc_info.value.error == "Invalid username"
    
    def test_password_minimum_length(self):
        assert validate_password("secret") == "secret"
        with pytest.raises(BadRequest):
            validate_password("short")
    
    def test_email_for_username_is_case_insensitive(self):
        assert email_for_username("Alice_01", "users.test") == "alice_01@users.test"


class TestAccountModels:
    """Tests for provider payload parsing."""
    
    def test_username_from_metadata(self):
        account = Account.from_provider({
            "id": "u1",
            "email": "alice@users.test",
            "user_metadata": {"username": "Alice"},
        })
        assert account == Account(id="u1", username="Alice", email="alice@users.test")
    
    def test_username_falls_back_to_email(self):
        account = Account.from_provider({"id": "u1", "email": "bob@users.test"})
        assert account.username == "bob"
    
    def test_session_requires_access_token(self):
        assert AuthSession.from_provider({"user": {"id": "u1"}}) is None
        session = AuthSession.from_provider({"access_token": "t", "token_type": None})
        assert session.token_type == "bearer"


class TestFileSchemas:
    """Tests for file descriptors."""
    
    def test_file_object_serializes_timestamp(self):
        created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        descriptor = FileObject(
            name="a.txt",
            size=3,
            type="text/plain",
            path="1700000000000_a.txt",
            url="https://cdn.test/1700000000000_a.txt",
            created_at=created,
        )
        
        data = descriptor.to_dict()
        
        assert data["created_at"] == "2026-01-02T03:04:05+00:00"
        assert FileResponse(**data).created_at == created
    
    def test_file_response_requires_path(self):
        with pytest.raises(ValidationError):
            FileResponse(name="a.txt", size=3, url="https://cdn.test/a.txt")


class TestPaymentSchemas:
    """Tests for checkout schemas and webhook events."""
    
    def test_checkout_request_defaults(self):
        schema = CheckoutRequest()
        assert schema.productId is None
        assert schema.quantity == 1
    
    def test_checkout_request_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            CheckoutRequest(quantity=0)
    
    def test_webhook_event_metadata(self):
        event = WebhookEvent(
            id="evt_1",
            type="checkout.session.completed",
            kind=WebhookEventKind.CHECKOUT_COMPLETED,
            data={"id": "cs_1", "metadata": {"user_id": "u1"}},
        )
        assert event.metadata == {"user_id": "u1"}
        assert WebhookEvent(id=None, type="x", kind=WebhookEventKind.OTHER).metadata == {}


class TestErrors:
    """Tests for error rendering."""
    
    def test_empty_fields_omitted(self):
        assert BadRequest("No file provided").to_dict() == {"error": "No file provided"}
    
    def test_details_hint_and_extra(self):
        error = StorageError(
            "Failed to upload file to storage",
            details="Bucket not found",
            hint="Check the bucket",
            extra={"bucket": "uploads"},
        )
        assert error.status_code == 500
        assert error.to_dict() == {
            "error": "Failed to upload file to storage",
            "details": "Bucket not found",
            "hint": "Check the bucket",
            "bucket": "uploads",
        }
    
    def test_status_codes(self):
        assert PayloadTooLarge().status_code == 413
        assert Unauthorized().status_code == 401
        assert Unauthorized().headers == {"WWW-Authenticate": "Bearer"}
        assert BadRequest("x", status_code=422).status_code == 422
