"""
Module: push.py
Description: Push event delivery to user webhooks.

Implements HTTP push delivery with timeout handling. One call to
deliver() is one delivery attempt: it never raises for HTTP or network
failures, it reports them in a DeliveryResult so the caller can apply
the retry schedule.
"""

import json
from typing import Any, Dict

import httpx

from trigger_relay.models.event import DeliveryResult, TriggerEvent, WebhookResponse
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)

# Captured response limits, well under the 400 KB storage item limit
MAX_STORED_BODY_BYTES = 16 * 1024
MAX_STORED_HEADERS = 50
MAX_HEADER_VALUE_LENGTH = 1024


class WebhookDeliveryClient:
    """
    HTTP client for pushing trigger events to webhooks.

    Method, URL, custom headers and body all come from the snapshot
    stored on the event, never from the live trigger.
    """

    def __init__(self, timeout_seconds: int = 30, product_name: str = "TriggerRelay"):
        """
        Initialize push delivery client.

        Args:
            timeout_seconds: Hard HTTP timeout in seconds
            product_name: Used in the User-Agent and X- correlation headers

        Raises:
            ValueError: If timeout_seconds is not positive
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.timeout_seconds = timeout_seconds
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self.product_name = product_name
        self.user_agent = f"{product_name}-Triggers/1.0"

    def build_headers(self, event: TriggerEvent) -> Dict[str, str]:
        """Required headers merged with (and overridable by) the custom ones."""
        headers = {
            'Content-Type': 'application/json',
            'User-Agent': self.user_agent,
            f'X-{self.product_name}-Event-ID': event.event_id,
            f'X-{self.product_name}-Event-Type': event.event_type,
            f'X-{self.product_name}-Trigger-ID': event.trigger_id,
        }
        for name, value in event.webhook_headers.items():
            # Header names are case-insensitive; the custom header wins
            for existing in [k for k in headers if k.lower() == name.lower()]:
                del headers[existing]
            headers[name] = value
        return headers

    async def deliver(self, event: TriggerEvent) -> DeliveryResult:
        """
        Deliver one event to its webhook.

        Args:
            event: Event to deliver

        Returns:
            DeliveryResult; success only for a 2xx response
        """
        if not isinstance(event, TriggerEvent):
            raise ValueError("event must be a TriggerEvent instance")

        logger.debug(
            "Attempting webhook delivery",
            event_id=event.event_id,
            trigger_id=event.trigger_id,
            webhook_url=event.webhook_url,
            attempt=event.attempt_count + 1
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    event.webhook_method,
                    event.webhook_url,
                    content=json.dumps(event.webhook_payload, default=str),
                    headers=self.build_headers(event)
                )

            except httpx.TimeoutException:
                logger.warning(
                    "Webhook delivery timeout",
                    event_id=event.event_id,
                    webhook_url=event.webhook_url,
                    timeout_seconds=self.timeout_seconds
                )
                return DeliveryResult(
                    success=False,
                    error=f"Request timed out after {self.timeout_seconds}s"
                )

            except httpx.HTTPError as e:
                logger.warning(
                    "Webhook delivery network error",
                    event_id=event.event_id,
                    webhook_url=event.webhook_url,
                    error=str(e),
                    error_type=type(e).__name__
                )
                return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        webhook_response = WebhookResponse(
            status_code=response.status_code,
            body=_parse_body(response),
            headers=_capture_headers(response)
        )

        if response.is_success:
            logger.info(
                "Webhook delivered successfully",
                event_id=event.event_id,
                status_code=response.status_code,
                response_time_ms=response.elapsed.total_seconds() * 1000
            )
            return DeliveryResult(
                success=True,
                status_code=response.status_code,
                response=webhook_response
            )

        logger.warning(
            "Webhook delivery HTTP error",
            event_id=event.event_id,
            status_code=response.status_code,
            response=response.text[:500]  # Truncate large responses
        )
        return DeliveryResult(
            success=False,
            status_code=response.status_code,
            response=webhook_response,
            error=f"HTTP {response.status_code}"
        )


def _parse_body(response: httpx.Response) -> Any:
    """
    Response body as parsed JSON when possible, else raw text.

    Bodies over MAX_STORED_BODY_BYTES are kept as truncated text so the
    event record stays within the storage item size limit.
    """
    if len(response.content) > MAX_STORED_BODY_BYTES:
        return response.text[:MAX_STORED_BODY_BYTES]
    try:
        return response.json()
    except ValueError:
        return response.text


def _capture_headers(response: httpx.Response) -> Dict[str, str]:
    """Response headers, bounded in count and value length."""
    captured = {}
    for name, value in list(response.headers.items())[:MAX_STORED_HEADERS]:
        captured[name] = value[:MAX_HEADER_VALUE_LENGTH]
    return captured
