"""
Webhook Code Sender
===================
Delivers counter-mode codes by posting them to a notification service
(which sends the email or SMS).
"""

from typing import Optional

import httpx
import structlog
from pydantic import BaseModel
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = structlog.get_logger(__name__)


class CodeDeliveryRequest(BaseModel):
    """Payload posted to the notification service."""
    username: str
    code: str
    channel: str = "email"
    template: str = "one_time_password"


class WebhookCodeSender:
    """
    CodeSender posting to an HTTP endpoint.

    Transport errors and 5xx responses are retried with exponential
    backoff; any other failure is logged and reported as not sent.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        channel: str = "email",
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff: float = 1.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            url: Notification endpoint
            api_key: Sent as X-Internal-Secret when set
            channel: Delivery channel name passed to the service
            timeout: Request timeout in seconds
            max_attempts: Attempts before giving up
            backoff: Exponential backoff multiplier in seconds
            client: Preconfigured httpx client (mainly for tests)
        """
        self.url = url
        self.channel = channel
        self.max_attempts = max_attempts
        self.backoff = backoff

        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-Internal-Secret"] = api_key
        self.client = client or httpx.Client(timeout=timeout, headers=headers)

    def close(self) -> None:
        self.client.close()

    def _post(self, payload: CodeDeliveryRequest) -> httpx.Response:
        response = self.client.post(self.url, json=payload.model_dump())
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    def send_code(self, username: str, code: str) -> bool:
        payload = CodeDeliveryRequest(username=username, code=code, channel=self.channel)
        retrying = Retrying(
            retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            reraise=True,
        )
        try:
            response = retrying(self._post, payload)
        except httpx.HTTPError as e:
            logger.error("OTP code delivery failed", username=username, error=str(e))
            return False

        if response.is_success:
            logger.info("OTP code delivered", username=username, channel=self.channel)
            return True

        logger.warning(
            "OTP code delivery rejected",
            username=username,
            status_code=response.status_code,
        )
        return False
