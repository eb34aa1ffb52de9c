"""
Logging Delivery
================
Development deliverer that writes OTP hand-offs to the log.
"""

from typing import List, Tuple
import structlog

from ..otp.models import Purpose
from .base import Deliverer, DeliveryPayload

logger = structlog.get_logger(__name__)


class LoggingDeliverer(Deliverer):
    """
    Logs deliveries instead of sending them.

    For local development only: the code is written to the log in clear.
    """

    name = "log"

    def __init__(self):
        self.sent: List[Tuple[str, Purpose, DeliveryPayload]] = []

    async def deliver(self, recipient: str, purpose: Purpose, payload: DeliveryPayload) -> None:
        self.sent.append((recipient, purpose, payload))
        logger.info(
            "DEV ONLY - OTP delivery",
            recipient=recipient,
            purpose=purpose.value,
            name=payload.display_name,
            otp=payload.otp,
        )
