"""
Tests for service layer business logic.
"""
import hashlib
import hmac
import json
import time
import pytest
from types import SimpleNamespace
from unittest.mock import patch

import stripe

from filerelay.errors import (
    BadRequest,
    ConfigurationError,
    PaymentProviderError,
    StorageError,
)
from filerelay.models.account import Account
from filerelay.models.checkout import CheckoutStatus, WebhookEventKind
from filerelay.services.file_service import (
    FileService,
    derive_storage_key,
    display_name,
    sanitize_filename,
)
from filerelay.services.payment_service import PaymentService, session_status
from fakes import FakeStorage, ticking_clock


class TestStorageKeys:
    """Tests for storage key derivation."""
    
    def test_sanitize_filename(self):
        assert sanitize_filename("report.pdf") == "report.pdf"
        assert sanitize_filename("my file#1.tar.gz") == "my_file_1.tar.gz"
        assert sanitize_filename("../etc/passwd") == ".._etc_passwd"
    
    def test_derive_storage_key(self):
        assert derive_storage_key("a b.txt", now_ms=1700000000123) == "1700000000123_a_b.txt"
    
    def test_display_name_strips_timestamp(self):
        assert display_name("1700000000123_report.pdf") == "report.pdf"
        assert display_name("1700000000123_2024_notes.txt") == "2024_notes.txt"
        assert display_name("legacy.txt") == "legacy.txt"


class TestFileService:
    """Tests for FileService."""
    
    @pytest.mark.asyncio
    async def test_upload_returns_descriptor(self):
        storage = FakeStorage()
        service = FileService(storage, clock=ticking_clock())
        
        stored = await service.upload("report.pdf", b"%PDF" * 256, "application/pdf", user_id="u1")
        
        assert stored.name == "report.pdf"
        assert stored.size == 1024
        assert stored.type == "application/pdf"
        assert stored.path == "1700000000000_report.pdf"
        assert stored.url == storage.public_url(stored.path)
    
    @pytest.mark.asyncio
    async def test_upload_without_filename(self):
        storage = FakeStorage()
        service = FileService(storage)
        
        with pytest.raises(BadRequest):
            await service.upload(None, b"abc", "text/plain")
        assert storage.calls == []
    
    @pytest.mark.asyncio
    async def test_same_millisecond_collision_is_refused(self):
        """Two uploads of one name in the same tick: the second fails, the first is kept."""
        storage = FakeStorage()
        service = FileService(storage, clock=lambda: 1_700_000_000.0)
        
        first = await service.upload("a.txt", b"first", "text/plain")
        with pytest.raises(StorageError):
            await service.upload("a.txt", b"second", "text/plain")
        
        assert storage.objects[first.path][0] == b"first"
    
    @pytest.mark.asyncio
    async def test_list_files_empty(self):
        service = FileService(FakeStorage())
        
        assert await service.list_files() == []
    
    @pytest.mark.asyncio
    async def test_list_files_attaches_urls(self):
        storage = FakeStorage()
        service = FileService(storage, clock=ticking_clock())
        await service.upload("photo.png", b"png", "image/png")
        
        files = await service.list_files()
        
        assert len(files) == 1
        assert files[0].name == "photo.png"
        assert files[0].type == "image/png"
        assert files[0].url.endswith(files[0].path)
        assert files[0].created_at is not None


def _stripe_session(**kwargs):
    defaults = {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestSessionStatus:
    """Tests for Stripe session status mapping."""
    
    @pytest.mark.parametrize("status,payment_status,expected", [
        ("complete", "paid", CheckoutStatus.COMPLETED),
        ("complete", "no_payment_required", CheckoutStatus.COMPLETED),
        ("complete", "unpaid", CheckoutStatus.PENDING),
        ("open", "unpaid", CheckoutStatus.PENDING),
        ("expired", "unpaid", CheckoutStatus.CANCELLED),
    ])
    def test_mapping(self, status, payment_status, expected):
        session = _stripe_session(status=status, payment_status=payment_status)
        assert session_status(session) is expected


class TestPaymentService:
    """Tests for PaymentService."""
    
    @pytest.mark.asyncio
    async def test_create_checkout_anonymous(self, payment_service: PaymentService):
        with patch("stripe.Product.retrieve", return_value=SimpleNamespace(default_price=None)), \
                patch("stripe.Price.list", return_value=SimpleNamespace(data=[SimpleNamespace(id="price_9")])), \
                patch("stripe.checkout.Session.create", return_value=_stripe_session(status="open")) as create:
            session = await payment_service.create_checkout(account=None)
        
        assert session.session_id == "cs_test_1"
        assert session.status is CheckoutStatus.PENDING
        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_123"
        assert kwargs["line_items"] == [{"price": "price_9", "quantity": 1}]
        assert "customer_email" not in kwargs
        assert "user_id" not in kwargs["metadata"]
        assert kwargs["success_url"] == "https://app.test/payment/success?session_id={CHECKOUT_SESSION_ID}"
    
    @pytest.mark.asyncio
    async def test_create_checkout_product_override(self, payment_service: PaymentService):
        account = Account(id="u1", username="alice", email="alice@users.test")
        with patch("stripe.Product.retrieve", return_value=SimpleNamespace(default_price="price_1")) as product, \
                patch("stripe.checkout.Session.create", return_value=_stripe_session()) as create:
            await payment_service.create_checkout(account=account, product_id="prod_other", quantity=3)
        
        assert product.call_args.args[0] == "prod_other"
        assert create.call_args.kwargs["client_reference_id"] == "u1"
        assert create.call_args.kwargs["metadata"]["product_id"] == "prod_other"
    
    @pytest.mark.asyncio
    async def test_create_checkout_product_without_price(self, payment_service: PaymentService):
        with patch("stripe.Product.retrieve", return_value=SimpleNamespace(default_price=None)), \
                patch("stripe.Price.list", return_value=SimpleNamespace(data=[])), \
                patch("stripe.checkout.Session.create") as create:
            with pytest.raises(ConfigurationError):
                await payment_service.create_checkout(account=None)
        create.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_create_checkout_provider_rejects(self, payment_service: PaymentService):
        error = stripe.InvalidRequestError("No such product: 'prod_default'", "id", http_status=404)
        with patch("stripe.Product.retrieve", side_effect=error):
            with pytest.raises(PaymentProviderError) as exc_info:
                await payment_service.create_checkout(account=None)
        
        assert exc_info.value.status_code == 404
        assert exc_info.value.extra["providerStatus"] == 404
        assert "No such product" in exc_info.value.details
    
    @pytest.mark.asyncio
    async def test_create_checkout_bad_api_key_is_not_401(self, payment_service: PaymentService):
        error = stripe.AuthenticationError("Invalid API Key provided", http_status=401)
        with patch("stripe.Product.retrieve", side_effect=error):
            with pytest.raises(PaymentProviderError) as exc_info:
                await payment_service.create_checkout(account=None)
        
        assert exc_info.value.status_code == 502
    
    @pytest.mark.asyncio
    async def test_get_status_unknown_session_reports_failed(self, payment_service: PaymentService):
        error = stripe.InvalidRequestError("No such checkout.session", "id", http_status=404)
        with patch("stripe.checkout.Session.retrieve", side_effect=error):
            status = await payment_service.get_status("cs_missing")
        
        assert status is CheckoutStatus.FAILED
    
    @pytest.mark.asyncio
    async def test_get_status_unreachable_provider(self, payment_service: PaymentService):
        with patch("stripe.checkout.Session.retrieve", side_effect=stripe.APIConnectionError("Network down")):
            with pytest.raises(PaymentProviderError):
                await payment_service.get_status("cs_test_1")
    
    @pytest.mark.asyncio
    async def test_get_status_requires_api_key(self):
        service = PaymentService(api_key=None, product_id=None, return_url="https://app.test")
        with pytest.raises(ConfigurationError):
            await service.get_status("cs_test_1")


def _sign(payload: bytes, secret: str, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


class TestWebhookParsing:
    """Tests for webhook parsing and signature checks."""
    
    SECRET = "whsec_test"
    
    def _service(self, secret=None):
        return PaymentService(
            api_key="sk_test_123",
            product_id="prod_default",
            return_url="https://app.test",
            webhook_secret=secret,
        )
    
    def test_maps_stripe_event_types(self):
        payload = json.dumps({
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_1", "metadata": {"user_id": "u1"}}},
        }).encode()
        
        event = self._service().parse_webhook(payload, None)
        
        assert event.kind is WebhookEventKind.CHECKOUT_COMPLETED
        assert event.metadata == {"user_id": "u1"}
    
    def test_accepts_canonical_event_types(self):
        payload = json.dumps({"type": "payment.failed", "data": {"object": {}}}).encode()
        
        event = self._service().parse_webhook(payload, None)
        
        assert event.kind is WebhookEventKind.PAYMENT_FAILED
    
    def test_unknown_event_type(self):
        payload = json.dumps({"type": "customer.created"}).encode()
        
        event = self._service().parse_webhook(payload, None)
        
        assert event.kind is WebhookEventKind.OTHER
        assert event.data == {}
    
    @pytest.mark.parametrize("payload", [b"not json", b"[]", b'{"data": {}}'])
    def test_malformed_payload(self, payload):
        with pytest.raises(BadRequest):
            self._service().parse_webhook(payload, None)
    
    def test_valid_signature(self):
        payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}).encode()
        
        event = self._service(self.SECRET).parse_webhook(payload, _sign(payload, self.SECRET))
        
        assert event.kind is WebhookEventKind.PAYMENT_SUCCEEDED
    
    def test_invalid_signature(self):
        payload = json.dumps({"id": "evt_1", "type": "payment_intent.succeeded"}).encode()
        
        with pytest.raises(BadRequest) as exc_info:
            self._service(self.SECRET).parse_webhook(payload, _sign(payload, "whsec_other"))
        assert exc_info.value.error == "Invalid webhook signature"
    
    def test_missing_signature(self):
        payload = json.dumps({"type": "payment.succeeded"}).encode()
        
        with pytest.raises(BadRequest) as exc_info:
            self._service(self.SECRET).parse_webhook(payload, None)
        assert exc_info.value.error == "Missing webhook signature"
    
    def test_handle_webhook_logs_failure_message(self, caplog):
        payload = json.dumps({
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_1", "last_payment_error": {"message": "Card declined"}}},
        }).encode()
        service = self._service()
        
        service.handle_webhook(service.parse_webhook(payload, None))
        
        assert "Card declined" in caplog.text
