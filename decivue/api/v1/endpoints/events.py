"""SSE and polling endpoints for evaluation and conflict events."""

import asyncio
import logging
import time

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from decivue.core.services.event_bus import event_bus, format_sse

logger = logging.getLogger(__name__)

router = APIRouter()


def _type_filter(types: str | None) -> tuple[str, ...]:
    if not types:
        return ()
    return tuple(t.strip() for t in types.split(",") if t.strip())


@router.get("/stream")
async def stream_events(
    since: float = Query(default=0, description="Unix timestamp; replay events after this time"),
    types: str | None = Query(default=None, description="Comma-separated type prefixes"),
):
    """Server-Sent Events stream. Pass ``since`` to replay missed events on reconnect."""
    prefixes = _type_filter(types)

    async def event_generator():
        queue = await event_bus.subscribe()
        try:
            if since > 0:
                for event_dict in event_bus.get_events_since(since, prefixes):
                    yield format_sse(event_dict)

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=30.0)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if not prefixes or event.type.startswith(prefixes):
                    yield event.to_sse()
        except asyncio.CancelledError:
            logger.debug("Event stream closed by client")
        finally:
            await event_bus.unsubscribe(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/poll")
async def poll_events(
    since: float = Query(default=0, description="Unix timestamp; return events after this time"),
    types: str | None = Query(default=None, description="Comma-separated type prefixes"),
    limit: int = Query(default=50, ge=1, le=200),
):
    """Polling endpoint for consumers that cannot hold an SSE connection."""
    prefixes = _type_filter(types)
    if since > 0:
        events = event_bus.get_events_since(since, prefixes)[:limit]
    else:
        events = event_bus.get_recent_events(limit=limit, types=prefixes)

    return {
        "events": events,
        "count": len(events),
        "server_time": time.time(),
    }


@router.get("/stats")
async def event_stats():
    """Event bus diagnostics."""
    return {
        "subscriber_count": event_bus.subscriber_count,
        "buffer_size": event_bus.buffer_size,
        "server_time": time.time(),
    }
