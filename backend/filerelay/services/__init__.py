"""
Business logic services.
"""
from filerelay.services.file_service import FileService
from filerelay.services.payment_service import PaymentService

__all__ = [
    "FileService",
    "PaymentService",
]
