"""Best-effort webhook notifier for conversation side-channel events."""

import asyncio
import logging
from typing import Optional

import requests

from schemas.webhook import WebhookMessage

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """
    Posts conversation activity to an external webhook.

    Delivery is best-effort: every failure (missing URL, timeout, connection
    error, non-2xx status) is logged and reported as ``False``. Nothing is
    raised to the caller, so notifications never affect conversation flow.
    """

    def __init__(
        self,
        url: Optional[str],
        timeout: float = 5.0
    ):
        """
        Initialize webhook notifier.

        Args:
            url: Webhook URL (notifications are skipped when empty)
            timeout: Request timeout in seconds (default: 5)
        """
        self.url = url
        self.timeout = timeout
        self._last_error: Optional[str] = None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def _get_headers(self) -> dict:
        """Build request headers."""
        return {
            "Content-Type": "application/json",
            "User-Agent": "Conversation-Relay-Agent/1.0"
        }

    def _handle_error(self, error: Exception, message: WebhookMessage) -> None:
        self._last_error = str(error)
        logger.error(
            f"[{message.phone_number}] Failed to send to webhook "
            f"(sender={message.sender}, url={self.url}): {error}"
        )

    def _post(self, message: WebhookMessage) -> bool:
        response = requests.post(
            self.url,
            json=message.model_dump(by_alias=True),
            headers=self._get_headers(),
            timeout=self.timeout
        )

        if not 200 <= response.status_code < 300:
            self._handle_error(
                Exception(f"Webhook returned status {response.status_code}: {response.text}"),
                message
            )
            return False

        logger.info(
            f"[{message.phone_number}] Successfully sent to webhook "
            f"(sender={message.sender}, type={message.type})"
        )
        return True

    async def notify(self, message: WebhookMessage) -> bool:
        """
        Send a message to the webhook.

        Args:
            message: Payload to post

        Returns:
            True if the webhook accepted the message
        """
        if not self.url:
            logger.warning("No webhook URL provided, skipping webhook send")
            return False

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._post, message),
                timeout=self.timeout + 1
            )
        except (requests.exceptions.Timeout, asyncio.TimeoutError):
            self._handle_error(
                Exception(f"Request timeout after {self.timeout}s"),
                message
            )
            return False
        except requests.exceptions.ConnectionError as e:
            self._handle_error(e, message)
            return False
        except Exception as e:
            self._handle_error(e, message)
            return False
