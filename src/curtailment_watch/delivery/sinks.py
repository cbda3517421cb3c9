from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

import httpx

from curtailment_watch.errors import DeliveryFailure
from curtailment_watch.io.write import write_payload

LOGGER = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def deliver(self, document: Mapping[str, Any]) -> None: ...


class WebhookSink:
    """POST the payload as JSON to a webhook. Retries belong to the scheduler."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook URL is required for WebhookSink")
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def deliver(self, document: Mapping[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, headers=headers, json=dict(document))
        except httpx.HTTPError as exc:
            raise DeliveryFailure(f"Webhook request failed: {exc}") from exc

        if response.status_code >= 300:
            raise DeliveryFailure(
                f"Webhook rejected payload with status {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        LOGGER.info("Webhook accepted payload (status %s)", response.status_code)


class FileSink:
    def __init__(self, path: Path) -> None:
        self.path = path

    def deliver(self, document: Mapping[str, Any]) -> None:
        try:
            write_payload(document, self.path)
        except OSError as exc:
            raise DeliveryFailure(f"Could not write payload to {self.path}: {exc}") from exc
        LOGGER.info("Payload written to %s", self.path)
