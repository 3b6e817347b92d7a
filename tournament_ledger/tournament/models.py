"""
Tournament Data Models.

Immutable state representations for ledger entities.
All mutations go through the TournamentRegistry, which commits a new
record in place of the old one.
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar
from uuid import uuid4

from ..utils.json_utils import json_dumps


T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TournamentPhase(Enum):
    """Tournament lifecycle phases."""

    OPEN = "open"  # enrollment
    STARTED = "started"  # in progress
    ENDED = "ended"  # settled, terminal


class TournamentEventType(Enum):
    """Event types emitted by successful mutations."""

    TOURNAMENT_CREATED = auto()
    USER_JOINED = auto()
    TOURNAMENT_STARTED = auto()
    TOURNAMENT_ENDED = auto()


@dataclass(frozen=True)
class Tournament:
    """
    Tournament record - immutable.

    Participants are kept in join order so listings are deterministic;
    membership is what matters, not position.
    """

    tournament_id: int
    min_users: int
    participants: Tuple[str, ...] = ()
    started: bool = False
    finished: bool = False

    # participant -> score, written once by settlement; read-only view
    scores: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "participants", tuple(self.participants))
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    @property
    def phase(self) -> TournamentPhase:
        if self.finished:
            return TournamentPhase.ENDED
        if self.started:
            return TournamentPhase.STARTED
        return TournamentPhase.OPEN

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_active(self) -> bool:
        """Open or started, not yet ended."""
        return not self.finished

    def has_participant(self, identity: str) -> bool:
        return identity in self.participants

    def with_participant(self, identity: str) -> "Tournament":
        """Return new record with identity enrolled."""
        return Tournament(
            tournament_id=self.tournament_id,
            min_users=self.min_users,
            participants=self.participants + (identity,),
            started=self.started,
            finished=self.finished,
            scores=self.scores,
        )

    def as_started(self) -> "Tournament":
        """Return new record in the started phase."""
        return Tournament(
            tournament_id=self.tournament_id,
            min_users=self.min_users,
            participants=self.participants,
            started=True,
            finished=self.finished,
            scores=self.scores,
        )

    def as_settled(self, scores: Mapping[str, int]) -> "Tournament":
        """Return new record with final scores, in the ended phase."""
        return Tournament(
            tournament_id=self.tournament_id,
            min_users=self.min_users,
            participants=self.participants,
            started=self.started,
            finished=True,
            scores=scores,
        )

    def to_summary(self) -> "TournamentSummary":
        return TournamentSummary(
            tournament_id=self.tournament_id,
            min_users=self.min_users,
            participant_count=self.participant_count,
            started=self.started,
            finished=self.finished,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tournament_id,
            "min_users": self.min_users,
            "participants": list(self.participants),
            "started": self.started,
            "finished": self.finished,
            "scores": dict(self.scores),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Tournament":
        participants = data.get("participants", ())
        scores = data.get("scores", {})
        if not isinstance(participants, (list, tuple)):
            raise ValueError(f"participants must be a list, got {type(participants).__name__}")
        if not isinstance(scores, Mapping):
            raise ValueError(f"scores must be a mapping, got {type(scores).__name__}")

        return cls(
            tournament_id=data["id"],
            min_users=data["min_users"],
            participants=tuple(participants),
            started=data.get("started", False),
            finished=data.get("finished", False),
            scores=scores,
        )


@dataclass(frozen=True)
class TournamentSummary:
    """Read-only view of a record, as returned by queries."""

    tournament_id: int
    min_users: int
    participant_count: int
    started: bool
    finished: bool

    @property
    def phase(self) -> TournamentPhase:
        if self.finished:
            return TournamentPhase.ENDED
        if self.started:
            return TournamentPhase.STARTED
        return TournamentPhase.OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tournament_id,
            "min_users": self.min_users,
            "participant_count": self.participant_count,
            "started": self.started,
            "finished": self.finished,
            "phase": self.phase.value,
        }


@dataclass(frozen=True)
class ScoreCard:
    """A participant's result in one tournament.

    ``settled`` is False until the tournament ended with a score for this
    identity; ``score`` is None in that case.
    """

    tournament_id: int
    participant: str
    is_participant: bool
    settled: bool
    score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tournament_id,
            "participant": self.participant,
            "is_participant": self.is_participant,
            "settled": self.settled,
            "score": self.score,
        }


@dataclass(frozen=True)
class TournamentEvent:
    """
    Ledger event.

    Exactly one is emitted per successful mutation, for:
    - Subscribers tracking state in near real time
    - Audit history
    """

    event_id: str = field(default_factory=lambda: str(uuid4()))
    event_type: TournamentEventType = TournamentEventType.TOURNAMENT_CREATED
    tournament_id: int = 0
    timestamp: datetime = field(default_factory=_utcnow)

    # Event-specific data
    data: Dict[str, Any] = field(default_factory=dict)

    # Joining identity, for USER_JOINED
    user_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.name,
            "tournament_id": self.tournament_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "user_id": self.user_id,
        }

    def to_json(self) -> str:
        return json_dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TournamentEvent":
        return cls(
            event_id=data["event_id"],
            event_type=TournamentEventType[data["event_type"]],
            tournament_id=int(data["tournament_id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            data=dict(data.get("data") or {}),
            user_id=data.get("user_id") or None,
        )


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    """Outcome of a committed mutation: its value plus the events it emitted."""

    value: T
    events: Tuple[TournamentEvent, ...] = ()
