"""
Tournament Event Bus.

Fans committed ledger events out to subscribers so consumers (an HTTP
layer, an indexer) can track state without polling.

Delivery:
1. History: every event is appended to a bounded in-memory audit log
2. Local handlers: awaited in subscription order; one failing handler
   does not stop the others
3. Redis Stream: optional mirror for consumers in other processes
"""

from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Awaitable,
    Callable,
    Deque,
    Dict,
    Iterable,
    List,
    Optional,
    Set,
)
from uuid import uuid4

import redis.asyncio as redis

from ..logging_config import get_logger
from ..utils.json_utils import json_dumps
from .models import TournamentEvent, TournamentEventType

logger = get_logger(__name__)


# Type alias for event handlers
EventHandler = Callable[[TournamentEvent], Awaitable[None]]


@dataclass
class Subscription:
    """Event subscription metadata."""

    subscription_id: str
    event_types: Set[TournamentEventType]
    handler: EventHandler
    tournament_id: Optional[int] = None  # None = all tournaments
    is_active: bool = True

    def matches(self, event: TournamentEvent) -> bool:
        return self.is_active and (
            self.tournament_id is None or self.tournament_id == event.tournament_id
        )


@dataclass
class EventMetrics:
    """Event processing metrics."""

    events_published: int = 0
    events_dispatched: int = 0
    handler_failures: int = 0
    stream_failures: int = 0
    last_event_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "events_published": self.events_published,
            "events_dispatched": self.events_dispatched,
            "handler_failures": self.handler_failures,
            "stream_failures": self.stream_failures,
            "last_event_time": self.last_event_time.isoformat()
            if self.last_event_time
            else None,
        }


class TournamentEventBus:
    """Event bus for committed ledger events."""

    STREAM_KEY = "tournament:events:all"

    # Approximate cap on stream length
    STREAM_MAX_LEN = 10000

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        history_size: int = 10000,
    ):
        self.redis = redis_client

        self._subscriptions: Dict[str, Subscription] = {}
        self._handlers_by_type: Dict[TournamentEventType, List[Subscription]] = (
            defaultdict(list)
        )

        self._history: Deque[TournamentEvent] = deque(maxlen=history_size)
        self._metrics = EventMetrics()

    @property
    def metrics(self) -> EventMetrics:
        return self._metrics

    def subscribe(
        self,
        event_types: Iterable[TournamentEventType],
        handler: EventHandler,
        tournament_id: Optional[int] = None,
    ) -> str:
        """
        Subscribe to ledger events.

        Args:
            event_types: Event types to listen for
            handler: Async function called with each matching event
            tournament_id: Filter for one tournament (None = all)

        Returns:
            Subscription ID for unsubscribe
        """
        subscription_id = str(uuid4())
        subscription = Subscription(
            subscription_id=subscription_id,
            event_types=set(event_types),
            handler=handler,
            tournament_id=tournament_id,
        )

        self._subscriptions[subscription_id] = subscription
        for event_type in subscription.event_types:
            self._handlers_by_type[event_type].append(subscription)

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove subscription."""
        subscription = self._subscriptions.pop(subscription_id, None)
        if not subscription:
            return False

        subscription.is_active = False
        for event_type in subscription.event_types:
            self._handlers_by_type[event_type] = [
                s for s in self._handlers_by_type[event_type]
                if s.subscription_id != subscription_id
            ]

        return True

    async def publish(self, event: TournamentEvent) -> None:
        """Record, dispatch and mirror one committed event."""
        self._history.append(event)
        self._metrics.events_published += 1
        self._metrics.last_event_time = datetime.now(timezone.utc)

        await self._dispatch_local(event)

        if self.redis is not None:
            await self._publish_to_stream(event)

    async def publish_batch(self, events: Iterable[TournamentEvent]) -> None:
        for event in events:
            await self.publish(event)

    def history(self, tournament_id: Optional[int] = None) -> List[TournamentEvent]:
        """Events still held in memory, oldest first."""
        if tournament_id is None:
            return list(self._history)
        return [e for e in self._history if e.tournament_id == tournament_id]

    async def _dispatch_local(self, event: TournamentEvent) -> None:
        for subscription in list(self._handlers_by_type.get(event.event_type, [])):
            if not subscription.matches(event):
                continue
            try:
                await subscription.handler(event)
                self._metrics.events_dispatched += 1
            except Exception:
                self._metrics.handler_failures += 1
                logger.exception(
                    "event_handler_failed",
                    subscription_id=subscription.subscription_id,
                    event_type=event.event_type.name,
                    tournament_id=event.tournament_id,
                )

    async def _publish_to_stream(self, event: TournamentEvent) -> Optional[str]:
        """XADD the event; the ledger state is already committed, so a
        stream outage is logged rather than raised."""
        data = {
            "event_id": event.event_id,
            "event_type": event.event_type.name,
            "tournament_id": str(event.tournament_id),
            "timestamp": event.timestamp.isoformat(),
            "data": json_dumps(event.data),
            "user_id": event.user_id or "",
        }

        try:
            return await self.redis.xadd(
                self.STREAM_KEY,
                data,
                maxlen=self.STREAM_MAX_LEN,
                approximate=True,
            )
        except redis.RedisError as e:
            self._metrics.stream_failures += 1
            logger.warning(
                "event_stream_publish_failed",
                event_id=event.event_id,
                error=str(e),
            )
            return None
