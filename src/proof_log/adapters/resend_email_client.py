"""Resend API email client adapter."""

import logging
from dataclasses import dataclass

import httpx

from proof_log.errors import EmailDeliveryError
from proof_log.services.tokens import EmailSender

_logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class ResendEmailClient(EmailSender):
    """Email sender implemented with httpx against the Resend API."""

    api_key: str
    sender: str
    http_client: httpx.AsyncClient
    api_url: str = RESEND_API_URL

    @classmethod
    def create(cls, api_key: str, sender: str) -> "ResendEmailClient":
        """Create an email client with a managed httpx session."""
        return cls(api_key=api_key, sender=sender, http_client=httpx.AsyncClient())

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a plain-text email."""
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured")
        try:
            response = await self.http_client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": to,
                    "subject": subject,
                    "text": body,
                },
                timeout=10,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _logger.error(
                "Resend rejected email: status=%s body=%s",
                exc.response.status_code,
                exc.response.text,
            )
            raise EmailDeliveryError(
                f"Failed to send email: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            _logger.error("Resend request failed: %s", exc)
            raise EmailDeliveryError("Failed to send email") from exc
        _logger.info("Email sent via Resend: id=%s", _message_id(response))

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


def _message_id(response: httpx.Response) -> str | None:
    """Return the message id from a Resend response body, if it has one."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    message_id = payload.get("id")
    return str(message_id) if message_id is not None else None
