"""
HUMANLINK Event Infrastructure

Notifications emitted by a registry instance and the in-process bus that
delivers them. Notifications are the only channel through which a commitment
hash leaves the home instance; the transport layer subscribes here.

Design Principles
─────────────────

    Immutable Events: Events are facts about committed state changes. They
    are published only after the state change is applied.

    Error Isolation: A failing subscriber never reverts the operation that
    produced the event. Failures are counted and handed to on_error.

    Ordering: Subscribers are called in priority order, synchronously, in
    the order events are published. A registry publishes its events in the
    order they were appended to its event log.

Usage
─────

    bus = EventBus()

    @bus.subscribe(CommitmentLinked)
    def forward(event: CommitmentLinked):
        relay_queue.put(event.commitment_hash)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Type

from humanlink.observability import Layer, correlation_id_var, get_logger

logger = get_logger("bus", Layer.EVENTS)


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class Event:
    """
    Base class for all registry notifications.

    Metadata fields are auto-populated. chain_id identifies the instance
    that emitted the event.
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = field(default_factory=lambda: correlation_id_var.get() or None)
    chain_id: int = 0

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def payload(self) -> Dict[str, Any]:
        """Event fields without the metadata."""
        base = {f for f in Event.__dataclass_fields__}
        return {k: v for k, v in asdict(self).items() if k not in base}

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, sort_keys=True)


# ════════════════════════════════════════════════════════════════════════════
# DOMAIN EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass
class CommitmentLinked(Event):
    """Emitted on home when an identity links a meta-address commitment."""
    commitment_hash: str = ""
    identity: str = ""
    # Raw blob (hex) so it can be recovered from the log; only the hash is stored.
    meta_address: str = ""


@dataclass
class HumanStatusClaimed(Event):
    """Emitted when a derived address is recorded as human-verified."""
    derived_address: str = ""
    commitment_hash: str = ""


@dataclass
class CommitmentRelayed(Event):
    """Emitted on a non-home instance when a relayer delivers a commitment."""
    commitment_hash: str = ""
    relayer: str = ""


# ════════════════════════════════════════════════════════════════════════════
# EVENT BUS
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    """Registration for an event handler."""
    handler: EventHandler
    event_types: Set[Type[Event]]
    priority: int = 0
    filter_func: Optional[Callable[[Event], bool]] = None


class EventHandlerError(Exception):
    """Error during event handling."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


class EventBus:
    """
    Synchronous in-memory event bus.

    Supports typed subscriptions, filters and priorities.
    Thread-safe for concurrent publishing and subscribing.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._handlers: List[EventHandlerRegistration] = []
        self._lock = threading.RLock()
        self._on_error = on_error
        self._published_count = 0
        self._handled_count = 0
        self._error_count = 0

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
        filter_func: Optional[Callable[[Event], bool]] = None,
    ) -> Callable[[EventHandler], EventHandler]:
        """
        Decorator to subscribe a handler to event types.

        With no event types the handler receives every event.
        Higher priority handlers run first.
        """
        def decorator(handler: EventHandler) -> EventHandler:
            registration = EventHandlerRegistration(
                handler=handler,
                event_types=set(event_types) if event_types else {Event},
                priority=priority,
                filter_func=filter_func,
            )
            with self._lock:
                self._handlers.append(registration)
                self._handlers.sort(key=lambda r: -r.priority)
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            original_len = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < original_len

    def publish(self, event: Event) -> None:
        """Deliver an event to every matching subscriber, in priority order."""
        with self._lock:
            self._published_count += 1
            handlers_to_call = [
                registration
                for registration in self._handlers
                if any(isinstance(event, t) for t in registration.event_types)
                and (registration.filter_func is None or registration.filter_func(event))
            ]

        for registration in handlers_to_call:
            self._call_handler(registration.handler, event)

    def _call_handler(self, handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
            with self._lock:
                self._handled_count += 1
        except Exception as e:
            with self._lock:
                self._error_count += 1
            error = EventHandlerError(event, handler, e)
            logger.error(
                str(error),
                error_code="HANDLER_FAILED",
                exc_info=True,
                operation="publish",
                event_type=event.event_type,
            )
            if self._on_error:
                self._on_error(error)

    @property
    def metrics(self) -> Dict[str, int]:
        with self._lock:
            return {
                "published_count": self._published_count,
                "handled_count": self._handled_count,
                "error_count": self._error_count,
                "handler_count": len(self._handlers),
            }
