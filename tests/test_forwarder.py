import asyncio
import json
import logging

import httpx
import pytest

from sewa_gateway.forwarder import QueueForwarder
from sewa_gateway.models import ForwardingPayload


def _payload(queue_name="A-B"):
    return ForwardingPayload(data={"success": True}, queue_name=queue_name)


@pytest.mark.asyncio
async def test_submit_posts_payload():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"queued": True})

    forwarder = QueueForwarder("http://queue.test/submit", transport=httpx.MockTransport(handler))
    await forwarder.start()

    forwarder.submit(_payload())
    assert forwarder.pending == 1

    await forwarder.stop()

    assert forwarder.pending == 0
    assert seen == [{"type": "SewaCall", "data": {"success": True}, "queueName": "A-B"}]


@pytest.mark.asyncio
async def test_rejected_submission_is_logged(caplog):
    forwarder = QueueForwarder(
        "http://queue.test/submit",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    await forwarder.start()

    with caplog.at_level(logging.ERROR, logger="sewa_gateway.forwarder"):
        await forwarder.submit(_payload("T-1"))

    await forwarder.stop()
    assert any("HTTP 500" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_connection_error_is_logged_not_raised(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    forwarder = QueueForwarder("http://queue.test/submit", transport=httpx.MockTransport(handler))
    await forwarder.start()

    with caplog.at_level(logging.ERROR, logger="sewa_gateway.forwarder"):
        task = forwarder.submit(_payload())
        await task

    await forwarder.stop()
    assert task.exception() is None
    assert any("connection refused" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_submit_without_start_opens_client():
    forwarder = QueueForwarder(
        "http://queue.test/submit",
        transport=httpx.MockTransport(lambda request: httpx.Response(202)),
    )

    await forwarder.submit(_payload())

    await forwarder.stop()
    assert forwarder.pending == 0


@pytest.mark.asyncio
async def test_submit_returns_before_queue_answers():
    gate = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await gate.wait()
        return httpx.Response(200)

    forwarder = QueueForwarder("http://queue.test/submit", transport=httpx.MockTransport(handler))
    await forwarder.start()

    task = forwarder.submit(_payload())
    await asyncio.sleep(0.05)

    assert not task.done()
    assert forwarder.pending == 1

    gate.set()
    await forwarder.stop()
    assert task.done()


@pytest.mark.asyncio
async def test_concurrent_submissions_share_one_client():
    forwarder = QueueForwarder(
        "http://queue.test/submit",
        transport=httpx.MockTransport(lambda request: httpx.Response(200)),
    )

    forwarder.submit(_payload("A-1"))
    client = forwarder._client
    forwarder.submit(_payload("A-2"))

    assert client is not None
    assert forwarder._client is client

    await forwarder.stop()
    assert client.is_closed
    assert forwarder._client is None
