"""
Email Delivery
==============
Delivers OTP emails through a transactional email HTTP API.
"""

from typing import Any, Dict, Optional
import httpx
import structlog

from ..config import EmailConfig
from ..errors import DeliveryError
from ..keys import mask_identity
from ..otp.models import Purpose
from .base import Deliverer, DeliveryPayload

logger = structlog.get_logger(__name__)


# Template and subject per purpose
EMAIL_TEMPLATES: Dict[Purpose, Dict[str, str]] = {
    Purpose.REGISTRATION: {
        "template": "user-registration-otp",
        "subject": "Verify your email",
    },
    Purpose.PASSWORD_RESET: {
        "template": "forgot-password-otp",
        "subject": "Reset your password",
    },
}


class HttpEmailDeliverer(Deliverer):
    """
    Email deliverer backed by an HTTP email API.

    Template rendering happens on the email service side; this adapter only
    posts the template name and its variables.
    """

    name = "email"

    def __init__(
        self,
        config: Optional[EmailConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or EmailConfig()
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self._client = httpx.AsyncClient(headers=headers, timeout=self.config.timeout)
        return self._client

    def build_message(
        self,
        recipient: str,
        purpose: Purpose,
        payload: DeliveryPayload,
    ) -> Dict[str, Any]:
        """Request body for the email API."""
        template = EMAIL_TEMPLATES[purpose]
        return {
            "from": self.config.sender,
            "to": recipient,
            "subject": template["subject"],
            "template": template["template"],
            "data": {"name": payload.display_name, "otp": payload.otp},
        }

    async def deliver(self, recipient: str, purpose: Purpose, payload: DeliveryPayload) -> None:
        message = self.build_message(recipient, purpose, payload)

        try:
            response = await self.client.post(self.config.api_url, json=message)
        except httpx.HTTPError as e:
            logger.error(
                "Email delivery failed",
                recipient=mask_identity(recipient),
                purpose=purpose.value,
                error=str(e),
            )
            raise DeliveryError("Failed to send email", recipient=recipient, cause=e) from e

        if response.status_code not in (200, 201, 202):
            logger.warning(
                "Email API rejected message",
                recipient=mask_identity(recipient),
                purpose=purpose.value,
                status_code=response.status_code,
            )
            raise DeliveryError(
                "Failed to send email",
                recipient=recipient,
                status_code=response.status_code,
            )

        logger.info("OTP email sent", recipient=mask_identity(recipient), purpose=purpose.value)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
