"""In-process telemetry events for agent turns and tool execution."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Mapping, Protocol

LOGGER = logging.getLogger(__name__)

EventListener = Callable[[dict[str, Any]], None]

_EVENT_LISTENERS: dict[str, list[EventListener]] = {}


@dataclass(slots=True)
class TelemetryEvent:
    """A single emitted event with its payload."""

    name: str
    payload: dict[str, Any]
    timestamp: float = field(default_factory=time.time)


class TelemetrySink(Protocol):
    """Sink interface used to collect telemetry events."""

    def record(self, event: TelemetryEvent) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryTelemetrySink:
    """Ring-buffer sink for local inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._capacity = max(10, capacity)
        self._buffer: deque[TelemetryEvent] = deque(maxlen=self._capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, event: TelemetryEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def tail(self, limit: int | None = None) -> list[TelemetryEvent]:
        with self._lock:
            events = list(self._buffer)
        if limit is None or limit >= len(events):
            return events
        return events[-limit:]

    def names(self) -> list[str]:
        return [event.name for event in self.tail()]

    def attach(self, *event_names: str) -> Callable[[], None]:
        """Listen for *event_names* and return a callable that detaches again."""

        callbacks: list[tuple[str, EventListener]] = []
        for name in event_names:
            def _callback(payload: dict[str, Any], _name: str = name) -> None:
                self.record(TelemetryEvent(name=_name, payload=payload))

            register_event_listener(name, _callback)
            callbacks.append((name, _callback))

        def _detach() -> None:
            for name, callback in callbacks:
                unregister_event_listener(name, callback)

        return _detach

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


def register_event_listener(event_name: str, callback: EventListener) -> None:
    """Register a callback invoked whenever :func:`emit` fires *event_name*."""

    if not event_name or callback is None:
        return
    listeners = _EVENT_LISTENERS.setdefault(event_name, [])
    if callback not in listeners:
        listeners.append(callback)


def unregister_event_listener(event_name: str, callback: EventListener) -> None:
    listeners = _EVENT_LISTENERS.get(event_name)
    if not listeners:
        return
    if callback in listeners:
        listeners.remove(callback)
    if not listeners:
        _EVENT_LISTENERS.pop(event_name, None)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Broadcast a structured telemetry event to in-process listeners."""

    if not event_name:
        return
    event_payload: dict[str, Any] = {"event": event_name}
    if payload:
        event_payload.update(payload)
    for callback in list(_EVENT_LISTENERS.get(event_name, ())):
        try:
            callback(dict(event_payload))
        except Exception:  # pragma: no cover - listeners must not break emitters
            LOGGER.warning("Telemetry listener %s failed for %s", callback, event_name, exc_info=True)
    LOGGER.debug("Telemetry emit %s: %s", event_name, event_payload)


__all__ = [
    "EventListener",
    "InMemoryTelemetrySink",
    "TelemetryEvent",
    "TelemetrySink",
    "emit",
    "register_event_listener",
    "unregister_event_listener",
]
