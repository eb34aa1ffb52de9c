"""
Delivery Contract
=================
Hands an issued OTP to whatever transport reaches the recipient.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..otp.models import Purpose


@dataclass
class DeliveryPayload:
    """What the recipient sees: their display name and the code."""
    display_name: str
    otp: str

    def __repr__(self) -> str:
        # Keep the code out of reprs and tracebacks
        return f"DeliveryPayload(display_name={self.display_name!r}, otp='***')"


class Deliverer(ABC):
    """
    Abstract delivery collaborator.

    One attempt per call, no internal retry. Failures are raised as
    ``DeliveryError``.
    """

    name: str = "base"

    @abstractmethod
    async def deliver(self, recipient: str, purpose: "Purpose", payload: DeliveryPayload) -> None:
        """Deliver ``payload`` to ``recipient`` for ``purpose``."""

    async def close(self) -> None:
        """Release transport resources."""
