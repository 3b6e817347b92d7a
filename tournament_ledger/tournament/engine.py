"""
Tournament Engine.

Async service around a TournamentRegistry:

1. Serialization:
   - create holds the registry lock (it reads and bumps the counter)
   - join / start / end hold the lock of their record
   - validation and commit happen inside the lock, nothing else does

2. Shared state (redis lock backend):
   - several workers serve one ledger; the snapshot in Redis is the
     source of truth and the in-memory registry is a cache of it
   - every mutation holds the registry lock, reloads the latest snapshot,
     applies the change and saves before releasing
   - a failed save rejects the mutation; the cache is only replaced after
     the save succeeds

3. Publication:
   - events returned by the registry are published after the lock is
     released
   - outside shared mode a snapshot is saved after publication when a
     SnapshotManager is set; a failed save is logged and counted, the
     commit stands

4. Reads take no lock; records are immutable and committed by a single
   replacement, so a reader sees either the old record or the new one.
"""

from typing import Optional, Sequence

import redis.asyncio as redis

from ..logging_config import get_logger
from ..utils.errors import LedgerError
from .distributed_lock import (
    DistributedLockManager,
    LocalLockManager,
    LockManager,
    LockType,
)
from .event_bus import TournamentEventBus
from .models import MutationResult, ScoreCard, Tournament, TournamentSummary
from .registry import ActiveTournaments, TournamentRegistry
from .settlement import SettlementSummary
from .snapshot import SnapshotManager

logger = get_logger(__name__)


class TournamentEngine:
    """Serialized, observable access to one tournament registry."""

    def __init__(
        self,
        registry: TournamentRegistry,
        lock_manager: Optional[LockManager] = None,
        event_bus: Optional[TournamentEventBus] = None,
        snapshot: Optional[SnapshotManager] = None,
        shared_state: bool = False,
    ):
        if shared_state and snapshot is None:
            raise ValueError("shared state requires a snapshot manager")

        self.registry = registry
        self.lock_manager = lock_manager or LocalLockManager()
        self.event_bus = event_bus or TournamentEventBus()
        self.snapshot = snapshot
        self.shared_state = shared_state
        self.snapshot_failures = 0

    @classmethod
    async def bootstrap(
        cls,
        owner: str,
        redis_client: Optional[redis.Redis] = None,
        *,
        lock_backend: str = "local",
        lock_timeout_ms: int = 10000,
        lock_acquire_timeout_ms: int = 5000,
        event_history_size: int = 10000,
        event_stream_enabled: bool = True,
        snapshot_enabled: bool = True,
        snapshot_hmac_key: str = "tournament-ledger-snapshot-key",
    ) -> "TournamentEngine":
        """
        Build an engine, restoring the registry from the latest snapshot
        when Redis is available and one exists.

        With the redis lock backend the snapshot store is always enabled,
        since it is what the workers share.
        """
        shared_state = lock_backend == "redis"
        if shared_state and redis_client is None:
            raise ValueError("redis lock backend requires a redis client")

        snapshot = None
        registry = None

        if redis_client is not None and (snapshot_enabled or shared_state):
            snapshot = SnapshotManager(redis_client, snapshot_hmac_key)
            registry = await snapshot.load_latest(expected_owner=owner)

        if registry is None:
            registry = TournamentRegistry(owner)

        if shared_state:
            lock_manager: LockManager = DistributedLockManager(
                redis_client,
                default_lock_timeout_ms=lock_timeout_ms,
                default_acquire_timeout_ms=lock_acquire_timeout_ms,
            )
        else:
            lock_manager = LocalLockManager(default_acquire_timeout_ms=lock_acquire_timeout_ms)

        event_bus = TournamentEventBus(
            redis_client if event_stream_enabled else None,
            history_size=event_history_size,
        )

        logger.info(
            "tournament_engine_ready",
            owner=owner,
            counter=registry.counter,
            lock_backend=lock_backend,
            snapshots=snapshot is not None,
            shared_state=shared_state,
        )
        return cls(registry, lock_manager, event_bus, snapshot, shared_state)

    async def shutdown(self) -> None:
        """Release held locks and write a final snapshot."""
        await self.lock_manager.cleanup_all()
        if self.snapshot is not None and not self.shared_state:
            await self.snapshot.save(self.registry)

    async def refresh(self) -> None:
        """Pull the shared registry into the local cache (shared state only)."""
        if self.shared_state:
            self._adopt(await self._load_shared())

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_tournament(self, caller: str, min_users: int) -> int:
        result = await self._mutate(
            "create", caller, None, TournamentRegistry.create_tournament, caller, min_users
        )
        logger.info("tournament_created", tournament_id=result.value, min_users=min_users)
        return result.value

    async def join_tournament(self, caller: str, tournament_id: int) -> Tournament:
        result = await self._mutate(
            "join",
            caller,
            tournament_id,
            TournamentRegistry.join_tournament,
            caller,
            tournament_id,
        )
        logger.info(
            "user_joined",
            tournament_id=tournament_id,
            caller=caller,
            participants=result.value.participant_count,
        )
        return result.value

    async def start_tournament(self, caller: str, tournament_id: int) -> Tournament:
        result = await self._mutate(
            "start",
            caller,
            tournament_id,
            TournamentRegistry.start_tournament,
            caller,
            tournament_id,
        )
        logger.info(
            "tournament_started",
            tournament_id=tournament_id,
            participants=result.value.participant_count,
        )
        return result.value

    async def end_tournament(
        self,
        caller: str,
        participants: Sequence[str],
        scores: Sequence[int],
        tournament_id: int,
    ) -> SettlementSummary:
        result = await self._mutate(
            "end",
            caller,
            tournament_id,
            TournamentRegistry.end_tournament,
            caller,
            participants,
            scores,
            tournament_id,
        )
        logger.info(
            "tournament_ended",
            tournament_id=tournament_id,
            scored=len(result.value.entries),
            unscored=len(result.value.unscored),
        )
        return result.value

    async def _mutate(
        self,
        operation: str,
        caller: str,
        tournament_id: Optional[int],
        func,
        *args,
    ) -> MutationResult:
        """Lock, validate and commit one mutation, then publish its events."""
        if tournament_id is None or self.shared_state:
            lock_type, resource_id = LockType.REGISTRY, None
        else:
            lock_type, resource_id = LockType.TOURNAMENT, tournament_id

        async with self.lock_manager.lock(lock_type, resource_id):
            if self.shared_state:
                registry = await self._load_shared()
                result = self._apply(operation, caller, tournament_id, func, registry, *args)
                await self.snapshot.save(registry)
                self._adopt(registry)
            else:
                result = self._apply(operation, caller, tournament_id, func, self.registry, *args)

        await self._publish(result)
        return result

    def _apply(self, operation, caller, tournament_id, func, *args) -> MutationResult:
        """Run a registry mutation, logging a rejection before re-raising."""
        try:
            return func(*args)
        except LedgerError as e:
            logger.warning(
                "operation_rejected",
                operation=operation,
                caller=caller,
                tournament_id=tournament_id,
                code=e.code,
            )
            raise

    async def _load_shared(self) -> TournamentRegistry:
        registry = await self.snapshot.load_latest(expected_owner=self.owner)
        if registry is None:
            return TournamentRegistry(self.owner)
        return registry

    def _adopt(self, registry: TournamentRegistry) -> None:
        # a slow refresh must not roll the cache back past a newer commit
        if registry.revision >= self.registry.revision:
            self.registry = registry

    async def _publish(self, result: MutationResult) -> None:
        await self.event_bus.publish_batch(result.events)
        if self.snapshot is None or self.shared_state:
            return

        # the mutation is committed; a later save catches up
        try:
            await self.snapshot.save(self.registry)
        except redis.RedisError as e:
            self.snapshot_failures += 1
            logger.warning(
                "snapshot_save_failed",
                revision=self.registry.revision,
                error=str(e),
            )

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def owner(self) -> str:
        return self.registry.owner

    @property
    def counter(self) -> int:
        return self.registry.counter

    def get_active_tournaments(self) -> ActiveTournaments:
        return self.registry.get_active_tournaments()

    def get_tournament_details(self, tournament_id: int) -> TournamentSummary:
        return self.registry.get_tournament_details(tournament_id)

    def get_participants(self, tournament_id: int) -> Sequence[str]:
        return self.registry.get_participants(tournament_id)

    def get_player_score(self, participant: str, tournament_id: int) -> ScoreCard:
        return self.registry.get_player_score(participant, tournament_id)
