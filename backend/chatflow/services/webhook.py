"""
Webhook Invoker - Outbound HTTP calls for WEBHOOK nodes
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..core.config import settings
from .adapters import WebhookResponse

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


class HttpxWebhookInvoker:
    """
    Calls webhooks with httpx.

    Network errors, timeouts and non-2xx statuses are reported in the
    returned WebhookResponse; nothing is raised.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout or settings.WEBHOOK_TIMEOUT_SECONDS
        self._transport = transport

    async def invoke(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]],
        timeout: Optional[float] = None,
    ) -> WebhookResponse:
        """Send the request and describe the outcome"""
        method = (method or "POST").upper()
        request_timeout = timeout or self.timeout

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=request_timeout) as client:
                logger.info(f"Executing webhook: {method} {url}")

                if method in BODY_METHODS:
                    response = await client.request(method, url, headers=headers, json=body or {})
                else:
                    response = await client.request(method, url, headers=headers)

                data = self._parse_body(response)

                if response.is_success:
                    logger.info(f"Webhook {method} {url} - Status: {response.status_code}")
                    return WebhookResponse(success=True, status=response.status_code, body=data)

                error = f"HTTP {response.status_code}: {response.reason_phrase}"
                logger.warning(f"Webhook {method} {url} failed: {error}")
                return WebhookResponse(
                    success=False,
                    status=response.status_code,
                    body=data,
                    error=error
                )

        except httpx.TimeoutException:
            logger.warning(f"Webhook {method} {url} timed out after {request_timeout}s")
            return WebhookResponse(success=False, error=f"Timeout after {request_timeout}s")
        except httpx.HTTPError as e:
            logger.error(f"Webhook {method} {url} error: {e}")
            return WebhookResponse(success=False, error=str(e) or type(e).__name__)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """JSON when possible, text otherwise"""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
