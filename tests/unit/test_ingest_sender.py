from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from humiolog.core.errors import (
    IngestRejectedError,
    RequestBuildError,
    RetryableStatusError,
    TransportError,
)
from humiolog.core.events import TrackingEvent
from humiolog.sinks import BaseSender
from humiolog.sinks.http_client import (
    IngestSender,
    IngestSenderConfig,
    is_retryable_status,
)

URL = "https://logs.example.com/api/v1/ingest/humio-structured"


class _Recorder:
    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def _sender(
    responder: Callable[[httpx.Request], httpx.Response],
    *,
    token: str = "K",
    tags: dict[str, str] | None = None,
) -> tuple[IngestSender, _Recorder, httpx.AsyncClient]:
    recorder = _Recorder(responder)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    sender = IngestSender(
        IngestSenderConfig(url=URL, token=token, tags=tags or {"service": "api"}),
        client=client,
    )
    return sender, recorder, client


def _event() -> TrackingEvent:
    return TrackingEvent(
        timestamp="2024-01-01T00:00:00Z", attributes={"user": "u1"}
    )


def test_ingest_sender_satisfies_protocol() -> None:
    sender = IngestSender(IngestSenderConfig(url=URL, token="K"))
    assert isinstance(sender, BaseSender)


@pytest.mark.asyncio
async def test_send_posts_structured_body_with_bearer_token() -> None:
    sender, recorder, client = _sender(lambda _r: httpx.Response(200))

    await sender.send([_event()])
    await client.aclose()

    assert len(recorder.requests) == 1
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["Authorization"] == "Bearer K"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == [
        {
            "tags": {"service": "api"},
            "events": [
                {
                    "timestamp": "2024-01-01T00:00:00Z",
                    "attributes": {"user": "u1"},
                }
            ],
        }
    ]
    assert await sender.health_check() is True


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [408, 429, 500, 502, 503])
async def test_retryable_statuses_raise_retryable_error(status: int) -> None:
    sender, _, client = _sender(lambda _r: httpx.Response(status))

    with pytest.raises(RetryableStatusError) as info:
        await sender.send([_event()])
    await client.aclose()

    assert info.value.retryable is True
    assert info.value.status_code == status
    assert await sender.health_check() is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403, 413])
async def test_client_errors_are_rejected_without_retry(status: int) -> None:
    sender, _, client = _sender(lambda _r: httpx.Response(status, text="denied"))

    with pytest.raises(IngestRejectedError) as info:
        await sender.send([_event()])
    await client.aclose()

    assert info.value.retryable is False
    assert info.value.status_code == status
    assert info.value.body == "denied"


@pytest.mark.asyncio
async def test_transport_failure_maps_to_transport_error() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sender, _, client = _sender(_refuse)

    with pytest.raises(TransportError) as info:
        await sender.send([_event()])
    await client.aclose()

    assert info.value.retryable is True
    assert isinstance(info.value.cause, httpx.ConnectError)
    assert await sender.health_check() is False


@pytest.mark.asyncio
async def test_unencodable_header_maps_to_request_build_error() -> None:
    sender, recorder, client = _sender(lambda _r: httpx.Response(200), token="tökén")

    with pytest.raises(RequestBuildError) as info:
        await sender.send([_event()])
    await client.aclose()

    assert info.value.retryable is True
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_owned_client_is_created_lazily_and_closed_on_stop() -> None:
    sender = IngestSender(IngestSenderConfig(url=URL, token="K", timeout_seconds=2.0))
    assert sender._client is None  # noqa: SLF001

    await sender.start()
    client = sender._client  # noqa: SLF001
    assert isinstance(client, httpx.AsyncClient)
    assert client.timeout.connect == 2.0

    await sender.stop()
    assert sender._client is None  # noqa: SLF001
    assert client.is_closed


@pytest.mark.asyncio
async def test_injected_client_is_left_open_on_stop() -> None:
    sender, _, client = _sender(lambda _r: httpx.Response(200))
    await sender.start()
    await sender.stop()

    assert client.is_closed is False
    await client.aclose()


def test_config_coerces_tags_and_validates_timeout() -> None:
    cfg = IngestSenderConfig(url=URL, token="K", tags=None)  # type: ignore[arg-type]
    assert cfg.tags == {}
    with pytest.raises(ValueError):
        IngestSenderConfig(url=URL, token="K", timeout_seconds=0)


def test_is_retryable_status() -> None:
    assert is_retryable_status(500)
    assert is_retryable_status(429)
    assert not is_retryable_status(401)
    assert not is_retryable_status(404)
