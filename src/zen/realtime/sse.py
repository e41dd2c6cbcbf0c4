"""Server-Sent Events protocol implementation over ASGI.

Sends ``text/event-stream`` headers, produces events from an async
generator, watches for client disconnect and writes heartbeat comments
while the generator is idle.
"""

import asyncio
import contextlib
import json as json_module
import logging
from typing import Any

from zen._internal.asgi import Receive, Send
from zen.realtime.events import EventStream, SSEEvent
from zen.server.terminal_errors import log_error

logger = logging.getLogger("zen.server")

SSE_HEADERS: list[tuple[bytes, bytes]] = [
    (b"content-type", b"text/event-stream"),
    (b"cache-control", b"no-cache"),
    (b"connection", b"keep-alive"),
    (b"x-accel-buffering", b"no"),
]


async def handle_sse(
    event_stream: EventStream,
    send: Send,
    receive: Receive,
    *,
    extra_headers: list[tuple[bytes, bytes]] | None = None,
) -> None:
    """Stream events until the generator ends or the client leaves.

    A producer task sends events (and heartbeats on idle); a monitor
    task waits for ``http.disconnect``. Whichever finishes first cancels
    the other.
    """
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [*SSE_HEADERS, *(extra_headers or [])],
        }
    )

    disconnected = asyncio.Event()

    async def monitor_disconnect() -> None:
        while not disconnected.is_set():
            message = await receive()
            if message.get("type") == "http.disconnect":
                disconnected.set()
                return

    async def produce_events() -> None:
        # asyncio.wait leaves the pending __anext__() running across
        # heartbeat timeouts
        pending_next: asyncio.Task[Any] | None = None
        gen_iter = event_stream.generator.__aiter__()
        try:
            while not disconnected.is_set():
                if pending_next is None:

                    async def _next() -> Any:
                        return await gen_iter.__anext__()

                    pending_next = asyncio.create_task(_next())

                done, _ = await asyncio.wait({pending_next}, timeout=event_stream.heartbeat_interval)
                if not done:
                    if disconnected.is_set():
                        break
                    try:
                        await _send_chunk(send, b": heartbeat\n\n")
                    except RuntimeError:
                        break
                    continue

                pending_next = None
                try:
                    value = done.pop().result()
                except StopAsyncIteration:
                    break

                try:
                    await _send_chunk(send, format_event(value, event_stream.event_type).encode("utf-8"))
                except RuntimeError:
                    break
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            log_error(exc, prefix="SSE stream failed")
            with contextlib.suppress(RuntimeError):
                error_event = SSEEvent(data="Internal server error", event="error")
                await _send_chunk(send, error_event.encode().encode("utf-8"))
        finally:
            if pending_next is not None:
                if not pending_next.done():
                    pending_next.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await pending_next

    producer_task = asyncio.create_task(produce_events())
    monitor_task = asyncio.create_task(monitor_disconnect())
    try:
        _done, pending = await asyncio.wait(
            {producer_task, monitor_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
    finally:
        with contextlib.suppress(RuntimeError):
            await send({"type": "http.response.body", "body": b"", "more_body": False})


async def _send_chunk(send: Send, body: bytes) -> None:
    await send({"type": "http.response.body", "body": body, "more_body": True})


def format_event(value: Any, default_event: str | None = None) -> str:
    """Convert a yielded value to SSE wire format."""
    if isinstance(value, SSEEvent):
        return value.encode()
    if isinstance(value, dict):
        return SSEEvent(data=json_module.dumps(value, default=str), event=default_event).encode()
    return SSEEvent(data=str(value), event=default_event).encode()
