"""Fire-and-forget submission of call events to the queue-ingestion API."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx

from .models import ForwardingPayload

LOGGER = logging.getLogger(__name__)


class QueueForwarder:
    """Posts forwarding payloads to the downstream queue.

    ``submit`` schedules the POST on the running loop and returns at once, so
    the device gets its answer regardless of how the queue call turns out.
    Outcomes are only logged: nothing is retried and no error reaches the
    caller.

    Usage:
        forwarder = QueueForwarder(url)
        await forwarder.start()
        forwarder.submit(payload)
        ...
        await forwarder.stop()  # waits for in-flight submissions
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
            LOGGER.info("QueueForwarder started (url=%s)", self.url)
        return self._client

    async def start(self) -> None:
        self._ensure_client()

    async def stop(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            LOGGER.info("QueueForwarder stopped")

    def submit(self, payload: ForwardingPayload) -> asyncio.Task:
        task = asyncio.create_task(self._post(self._ensure_client(), payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _post(self, client: httpx.AsyncClient, payload: ForwardingPayload) -> None:
        try:
            response = await client.post(self.url, json=payload.wire())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.error(
                "Queue rejected %s for %s: HTTP %s",
                payload.type,
                payload.queue_name,
                exc.response.status_code,
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Queue submission to %s failed: %s", payload.queue_name, exc)
        except Exception:
            LOGGER.exception("Unexpected error submitting to %s", payload.queue_name)
        else:
            LOGGER.info(
                "Queued %s on %s (HTTP %s)", payload.type, payload.queue_name, response.status_code
            )
