"""
Event Bus Tests.
"""

import pytest

from tournament_ledger.tournament.event_bus import TournamentEventBus
from tournament_ledger.tournament.models import TournamentEvent, TournamentEventType
from tournament_ledger.utils.json_utils import json_loads


def make_event(event_type=TournamentEventType.TOURNAMENT_CREATED, tournament_id=0, **kwargs):
    return TournamentEvent(event_type=event_type, tournament_id=tournament_id, **kwargs)


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_handler_receives_matching_types(self):
        bus = TournamentEventBus()
        received = []

        async def handler(event):
            received.append(event)

        bus.subscribe([TournamentEventType.USER_JOINED], handler)

        await bus.publish(make_event(TournamentEventType.TOURNAMENT_CREATED))
        joined = make_event(TournamentEventType.USER_JOINED, user_id="0xa")
        await bus.publish(joined)

        assert received == [joined]

    @pytest.mark.asyncio
    async def test_tournament_filter(self):
        bus = TournamentEventBus()
        received = []

        async def handler(event):
            received.append(event.tournament_id)

        bus.subscribe(list(TournamentEventType), handler, tournament_id=2)

        for tid in range(4):
            await bus.publish(make_event(tournament_id=tid))

        assert received == [2]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = TournamentEventBus()
        received = []

        async def handler(event):
            received.append(event)

        sub_id = bus.subscribe([TournamentEventType.TOURNAMENT_CREATED], handler)
        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False

        await bus.publish(make_event())
        assert received == []

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        bus = TournamentEventBus()
        received = []

        async def broken(event):
            raise RuntimeError("handler bug")

        async def healthy(event):
            received.append(event)

        bus.subscribe([TournamentEventType.TOURNAMENT_STARTED], broken)
        bus.subscribe([TournamentEventType.TOURNAMENT_STARTED], healthy)

        await bus.publish(make_event(TournamentEventType.TOURNAMENT_STARTED))

        assert len(received) == 1
        assert bus.metrics.handler_failures == 1
        assert bus.metrics.events_dispatched == 1


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        bus = TournamentEventBus(history_size=3)
        for tid in range(5):
            await bus.publish(make_event(tournament_id=tid))

        assert [e.tournament_id for e in bus.history()] == [2, 3, 4]
        assert bus.metrics.events_published == 5

    @pytest.mark.asyncio
    async def test_history_by_tournament(self):
        bus = TournamentEventBus()
        await bus.publish_batch([
            make_event(tournament_id=0),
            make_event(TournamentEventType.USER_JOINED, tournament_id=1),
            make_event(TournamentEventType.USER_JOINED, tournament_id=0),
        ])

        assert [e.event_type for e in bus.history(0)] == [
            TournamentEventType.TOURNAMENT_CREATED,
            TournamentEventType.USER_JOINED,
        ]


class TestRedisStream:
    @pytest.mark.asyncio
    async def test_mirrors_to_stream(self, mock_redis):
        bus = TournamentEventBus(mock_redis)
        event = make_event(data={"min_users": 2})
        await bus.publish(event)

        (fields,) = mock_redis.stream(TournamentEventBus.STREAM_KEY)
        assert fields["event_id"] == event.event_id
        assert fields["event_type"] == "TOURNAMENT_CREATED"
        assert fields["tournament_id"] == "0"
        assert json_loads(fields["data"]) == {"min_users": 2}
        assert fields["user_id"] == ""

    @pytest.mark.asyncio
    async def test_stream_outage_is_counted_not_raised(self, mock_redis):
        mock_redis.fail_streams = True
        bus = TournamentEventBus(mock_redis)

        await bus.publish(make_event())

        assert bus.metrics.stream_failures == 1
        assert len(bus.history()) == 1


class TestEventModel:
    def test_dict_round_trip(self):
        event = make_event(TournamentEventType.USER_JOINED, tournament_id=4, user_id="0xb")
        restored = TournamentEvent.from_dict(event.to_dict())
        assert restored == event

    def test_to_json(self):
        event = make_event(data={"min_users": 1})
        data = json_loads(event.to_json())
        assert data["event_type"] == "TOURNAMENT_CREATED"
        assert data["data"] == {"min_users": 1}
