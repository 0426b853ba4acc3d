"""Password reset webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Optional
from loan_tracker.config import settings
from loan_tracker.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class PasswordResetNotifier:
    """Client for handing password reset tokens to the mail delivery service"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.password_reset_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self._transport = transport

    async def send_password_reset(self, email: str, reset_token: str) -> None:
        """
        Deliver a password reset event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on 5xx errors and network failures
        - 4xx responses are not retried

        Args:
            email: Account address the reset link goes to
            reset_token: Token the account holder confirms the reset with
        """
        if not self.webhook_url:
            logging.warning("No password reset webhook configured", extra={"email": email})
            return

        payload = {"event": "PASSWORD_RESET_REQUESTED", "email": email, "reset_token": reset_token}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except httpx.HTTPStatusError as e:
                    attempt += 1
                    webhook_failure_counter.inc()
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise

                except httpx.RequestError:
                    attempt += 1
                    webhook_failure_counter.inc()
                    if attempt >= self.max_retries:
                        # Final failure after all retries
                        raise

                backoff = self.backoff_base * (2 ** (attempt - 1))
                logging.warning(
                    "Password reset delivery failed, retrying",
                    extra={"attempt": attempt, "backoff_seconds": backoff},
                )
                await asyncio.sleep(backoff)
