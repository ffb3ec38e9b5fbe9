"""Event listener that polls a Decivue API and forwards notable events.

Decivue itself only publishes events; delivering them to people is left to
consumers like this one. The listener polls ``/events/poll``, remembers the
last timestamp it saw in a small state file, logs every notable event and
optionally POSTs it to a webhook (chat bridge, pager, ticketing).

Usage:
    decivue listen --api-url http://127.0.0.1:8000/api/v1
    decivue listen --webhook https://hooks.example.com/decivue --once
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://127.0.0.1:8000/api/v1"
DEFAULT_STATE_FILE = Path.home() / ".decivue_listener_state.json"
DEFAULT_TYPES = ("decision.lifecycle_changed", "conflict.", "constraint.violated")

URGENT_LIFECYCLES = {"AT_RISK", "INVALIDATED"}


def load_state(path: Path) -> dict:
    if path.exists():
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable listener state {path}: {e}")
    return {"since": 0}


def save_state(path: Path, state: dict) -> None:
    path.write_text(json.dumps(state))


def summarize(event: dict) -> str:
    """One human readable line per event."""
    payload = event.get("payload", {})
    kind = event.get("type", "")
    if kind == "decision.lifecycle_changed":
        return (
            f"Decision {payload.get('decision_id')} moved "
            f"{payload.get('old_lifecycle')} -> {payload.get('new_lifecycle')} "
            f"(health {payload.get('new_health_signal')})"
        )
    if kind == "conflict.detected":
        return (
            f"New {payload.get('kind', '')} conflict {payload.get('a')} <-> {payload.get('b')}: "
            f"{payload.get('conflict_type')} ({payload.get('confidence_score')})"
        )
    if kind == "conflict.resolved":
        return f"Conflict {payload.get('conflict_id')} resolved: {payload.get('action')}"
    if kind == "constraint.violated":
        return f"Decision {payload.get('decision_id')} violates constraint(s)"
    return f"{kind}: {json.dumps(payload, default=str)[:200]}"


def is_urgent(event: dict) -> bool:
    payload = event.get("payload", {})
    if event.get("type") == "decision.lifecycle_changed":
        return payload.get("new_lifecycle") in URGENT_LIFECYCLES
    return event.get("type") == "constraint.violated"


@dataclass
class EventListener:
    """Polls the events endpoint and hands each new event to ``handle``."""

    client: httpx.AsyncClient
    api_url: str = DEFAULT_API_URL
    types: tuple[str, ...] = DEFAULT_TYPES
    webhook_url: str | None = None
    state: dict = field(default_factory=lambda: {"since": 0})

    async def poll(self) -> list[dict]:
        params = {"since": self.state.get("since", 0), "limit": 200}
        if self.types:
            params["types"] = ",".join(self.types)
        response = await self.client.get(f"{self.api_url}/events/poll", params=params)
        response.raise_for_status()
        events = response.json()["events"]
        if events:
            self.state["since"] = max(e["timestamp"] for e in events)
        return events

    async def handle(self, event: dict) -> bool:
        """Log the event and forward it. Returns True if forwarded."""
        line = summarize(event)
        if is_urgent(event):
            logger.warning(line)
        else:
            logger.info(line)

        if not self.webhook_url:
            return False
        try:
            response = await self.client.post(
                self.webhook_url,
                json={"text": line, "urgent": is_urgent(event), "event": event},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Webhook delivery failed for event {event.get('id')}: {e}")
            return False
        return True

    async def run_once(self) -> int:
        events = await self.poll()
        forwarded = 0
        for event in events:
            if await self.handle(event):
                forwarded += 1
        if events:
            logger.info(f"Processed {len(events)} event(s), forwarded {forwarded}")
        return len(events)


async def run(
    api_url: str = DEFAULT_API_URL,
    poll_interval: int = 15,
    webhook_url: str | None = None,
    api_key: str | None = None,
    state_file: Path = DEFAULT_STATE_FILE,
    once: bool = False,
) -> None:
    """Main listener loop."""
    headers = {"X-API-Key": api_key} if api_key else {}
    state = load_state(state_file)
    logger.info(f"Listening to {api_url} every {poll_interval}s (since {state.get('since', 0)})")

    async with httpx.AsyncClient(timeout=30.0, headers=headers) as client:
        listener = EventListener(client, api_url=api_url, webhook_url=webhook_url, state=state)
        while True:
            try:
                await listener.run_once()
                save_state(state_file, listener.state)
            except httpx.HTTPError as e:
                logger.error(f"Polling {api_url} failed: {e}")
            if once:
                return
            await asyncio.sleep(poll_interval)
