"""
Tournament Lifecycle Ledger.

This module provides:
- An append-only registry of tournaments governed by one owner
- Record locking (asyncio or Redis) so mutations never interleave
- Event publication for every committed transition
- Signed registry snapshots for restarts
"""

from .engine import TournamentEngine
from .models import (
    MutationResult,
    ScoreCard,
    Tournament,
    TournamentEvent,
    TournamentEventType,
    TournamentPhase,
    TournamentSummary,
)
from .registry import ActiveTournaments, TournamentRegistry
from .settlement import SettlementEntry, SettlementSummary
from .event_bus import TournamentEventBus
from .snapshot import SnapshotIntegrityError, SnapshotManager
from .distributed_lock import DistributedLockManager, LocalLockManager, LockAcquisitionError

__all__ = [
    "TournamentEngine",
    "TournamentRegistry",
    "ActiveTournaments",
    "MutationResult",
    "ScoreCard",
    "Tournament",
    "TournamentEvent",
    "TournamentEventType",
    "TournamentPhase",
    "TournamentSummary",
    "SettlementEntry",
    "SettlementSummary",
    "TournamentEventBus",
    "SnapshotManager",
    "SnapshotIntegrityError",
    "DistributedLockManager",
    "LocalLockManager",
    "LockAcquisitionError",
]
