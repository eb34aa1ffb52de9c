"""
OTP Delivery
============
Delivery contract and transports.
"""

from .base import Deliverer, DeliveryPayload
from .console import LoggingDeliverer
from .email import EMAIL_TEMPLATES, HttpEmailDeliverer

__all__ = [
    "Deliverer",
    "DeliveryPayload",
    "LoggingDeliverer",
    "HttpEmailDeliverer",
    "EMAIL_TEMPLATES",
]
