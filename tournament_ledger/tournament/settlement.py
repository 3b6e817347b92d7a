"""
Tournament Settlement.

Validates the owner-supplied result arrays for a tournament being ended
and turns them into the final score mapping.

Policy:
- ``participants`` and ``scores`` are parallel arrays of equal length.
- Each identity appears at most once per call.
- Every identity must already be a participant; non-participants are
  rejected rather than silently recorded.
- Partial settlement is allowed: participants left out stay unscored.

Usage:
    check_lengths(users, scores)
    summary = build_settlement(record, users, scores)
    settled = record.as_settled(summary.scores)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

from ..utils.errors import (
    DuplicateParticipantError,
    InvalidScoreError,
    LengthMismatchError,
    UnknownParticipantError,
)
from .models import Tournament


@dataclass(frozen=True)
class SettlementEntry:
    """One scored participant."""

    participant: str
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {"participant": self.participant, "score": self.score}


@dataclass(frozen=True)
class SettlementSummary:
    """Validated settlement for one tournament."""

    tournament_id: int
    entries: Tuple[SettlementEntry, ...] = ()
    unscored: Tuple[str, ...] = ()
    settled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def scores(self) -> Dict[str, int]:
        return {e.participant: e.score for e in self.entries}

    @property
    def is_partial(self) -> bool:
        return bool(self.unscored)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tournament_id,
            "entries": [e.to_dict() for e in self.entries],
            "unscored": list(self.unscored),
            "partial": self.is_partial,
            "settled_at": self.settled_at.isoformat(),
        }


def check_lengths(participants: Sequence[Any], scores: Sequence[Any]) -> None:
    """Reject result arrays of different length.

    Stateless, so it is safe to run before the owner check.
    """
    if len(participants) != len(scores):
        raise LengthMismatchError(len(participants), len(scores))


def _is_score(value: Any) -> bool:
    # bool is an int subclass but never a score
    return isinstance(value, int) and not isinstance(value, bool)


def build_settlement(
    record: Tournament,
    participants: Sequence[str],
    scores: Sequence[int],
) -> SettlementSummary:
    """
    Validate result arrays against a started, unfinished record.

    Raises:
        LengthMismatchError: arrays differ in length
        DuplicateParticipantError: identity listed twice
        UnknownParticipantError: identity never joined
        InvalidScoreError: score is not an integer
    """
    check_lengths(participants, scores)

    seen: set = set()
    entries: List[SettlementEntry] = []
    for participant, score in zip(participants, scores):
        if participant in seen:
            raise DuplicateParticipantError(participant)
        seen.add(participant)

        if not record.has_participant(participant):
            raise UnknownParticipantError(participant)

        if not _is_score(score):
            raise InvalidScoreError(participant, score)

        entries.append(SettlementEntry(participant=participant, score=score))

    unscored = tuple(p for p in record.participants if p not in seen)

    return SettlementSummary(
        tournament_id=record.tournament_id,
        entries=tuple(entries),
        unscored=unscored,
    )
