"""
Transport Exceptions
====================
Exceptions raised by the store and delivery collaborators.

These are the only exceptions that cross module seams; the core converts
them into tagged results before they reach callers.
"""

from typing import Optional


class OTPCoreError(Exception):
    """Base exception for collaborator transport failures."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class StoreUnavailableError(OTPCoreError):
    """Raised when the shared store cannot be reached or times out."""
    pass


class DeliveryError(OTPCoreError):
    """Raised when the delivery transport fails to hand off an OTP."""

    def __init__(
        self,
        message: str,
        recipient: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        self.recipient = recipient
        self.status_code = status_code
        super().__init__(message, cause=cause)
