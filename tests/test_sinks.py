from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from curtailment_watch.delivery.sinks import FileSink, WebhookSink
from curtailment_watch.errors import DeliveryFailure


def test_webhook_sink_posts_json_document() -> None:
    captured: dict[str, object] = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["url"] = str(request.url)
        captured["content_type"] = request.headers["content-type"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, text="Accepted")

    sink = WebhookSink("https://hook.example/abc", transport=httpx.MockTransport(_handler))
    sink.deliver({"idempotency_key": "k", "flagged_count": 1})

    assert captured["method"] == "POST"
    assert captured["url"] == "https://hook.example/abc"
    assert captured["content_type"] == "application/json"
    assert captured["body"] == {"idempotency_key": "k", "flagged_count": 1}


def test_webhook_sink_raises_delivery_failure_on_rejection() -> None:
    calls: list[int] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500, text="scenario error")

    sink = WebhookSink("https://hook.example/abc", transport=httpx.MockTransport(_handler))

    with pytest.raises(DeliveryFailure) as excinfo:
        sink.deliver({"x": 1})

    assert excinfo.value.status_code == 500
    assert "scenario error" in str(excinfo.value)
    assert len(calls) == 1


def test_webhook_sink_wraps_transport_errors() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sink = WebhookSink("https://hook.example/abc", transport=httpx.MockTransport(_handler))

    with pytest.raises(DeliveryFailure, match="Webhook request failed"):
        sink.deliver({"x": 1})


def test_webhook_sink_requires_url() -> None:
    with pytest.raises(ValueError, match="Webhook URL is required"):
        WebhookSink("")


def test_file_sink_writes_sorted_json(tmp_path: Path) -> None:
    path = tmp_path / "out" / "payload.json"

    FileSink(path).deliver({"b": 2, "a": "⚠️"})

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == {"a": "⚠️", "b": 2}
    assert text.index('"a"') < text.index('"b"')
