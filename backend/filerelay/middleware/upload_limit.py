"""
Request size guard for multipart uploads.

Oversized payloads are refused from the declared Content-Length before the
upload handler runs. Bodies without a length (chunked transfer) are counted
as they stream in and cut off as soon as they pass the limit.
"""
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from filerelay.errors import BadRequest, PayloadTooLarge, error_response


class UploadSizeLimitMiddleware:
    """Answer 413 for upload requests larger than max_bytes."""

    def __init__(self, app: ASGIApp, max_bytes: int, paths: tuple = ("/api/upload",)):
        self.app = app
        self.max_bytes = max_bytes
        self.paths = paths

    def too_large(self) -> PayloadTooLarge:
        return PayloadTooLarge(
            details=f"Upload exceeds the {self.max_bytes} byte limit",
            extra={"maxBytes": self.max_bytes},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                await error_response(BadRequest("Invalid Content-Length header"))(scope, receive, send)
                return
            if declared > self.max_bytes:
                await error_response(self.too_large())(scope, receive, send)
                return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            if exceeded:
                raise self.too_large()
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    exceeded = True
                    raise self.too_large()
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            # The app's answer to the aborted body is replaced by the 413 below
            if exceeded and not response_started:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            if not exceeded or response_started:
                raise

        if exceeded and not response_started:
            await error_response(self.too_large())(scope, receive, send)
