"""
Tournament Registry - Append-only Ledger Core.

The registry owns every tournament record and the monotonic id counter.
It is an explicit store object: build one per ledger, pass it where it is
needed, several can coexist.

State machine per record:
─────────────────────────────────────────────────────────────────

    OPEN ──start──▶ STARTED ──end──▶ ENDED (terminal)
     │ ▲
     └─┘ join

- create: owner only, min_users > 0, appends id = counter
- join:   anyone, OPEN only, no duplicate identities
- start:  owner only, OPEN only, participants >= min_users
- end:    owner only, STARTED only, validated result arrays

─────────────────────────────────────────────────────────────────

Every operation validates fully before it commits. A commit is a single
replacement of an immutable record, so a rejected call leaves the
registry exactly as it was and readers never see a half-applied change.
The registry does no locking and no I/O; TournamentEngine serializes
callers and publishes the events returned here.
"""

from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

from ..utils.errors import (
    AlreadyFinishedError,
    AlreadyStartedError,
    DuplicateJoinError,
    InsufficientParticipantsError,
    NotActiveError,
    UnknownTournamentError,
    ZeroThresholdError,
)
from .access import require_owner
from .models import (
    MutationResult,
    ScoreCard,
    Tournament,
    TournamentEvent,
    TournamentEventType,
    TournamentSummary,
)
from .settlement import SettlementSummary, build_settlement, check_lengths


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ActiveTournaments:
    """
    Tournaments that have not ended, in ascending id order.

    Lazy and restartable: nothing is computed until iteration, and every
    new iteration reads the registry again.
    """

    def __init__(self, registry: "TournamentRegistry"):
        self._registry = registry

    def __iter__(self) -> Iterator[TournamentSummary]:
        for record in self._registry.records():
            if record.is_active:
                yield record.to_summary()

    def ids(self) -> List[int]:
        return [summary.tournament_id for summary in self]


class TournamentRegistry:
    """Append-only collection of tournament records with a fixed owner."""

    def __init__(self, owner: str):
        if not owner:
            raise ValueError("owner identity is required")

        self._owner = owner
        self._records: List[Tournament] = []

        # bumped on every committed mutation; snapshots carry it
        self._revision = 0

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def counter(self) -> int:
        """Number of tournaments ever created; also the next id."""
        return len(self._records)

    @property
    def revision(self) -> int:
        return self._revision

    def records(self) -> Tuple[Tournament, ...]:
        """Committed records at this instant."""
        return tuple(self._records)

    def get_tournament(self, tournament_id: int) -> Tournament:
        """Return the committed record, or raise UnknownTournamentError."""
        if not _is_int(tournament_id) or not 0 <= tournament_id < len(self._records):
            raise UnknownTournamentError(tournament_id, len(self._records))
        return self._records[tournament_id]

    def _commit(self, record: Tournament) -> None:
        self._records[record.tournament_id] = record
        self._revision += 1

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_tournament(self, caller: str, min_users: int) -> MutationResult[int]:
        """Append a new OPEN tournament; returns its id."""
        require_owner(caller, self._owner)

        if not _is_int(min_users) or min_users <= 0:
            raise ZeroThresholdError(min_users)

        tournament_id = len(self._records)
        self._records.append(Tournament(tournament_id=tournament_id, min_users=min_users))
        self._revision += 1

        event = TournamentEvent(
            event_type=TournamentEventType.TOURNAMENT_CREATED,
            tournament_id=tournament_id,
            data={"min_users": min_users},
        )
        return MutationResult(value=tournament_id, events=(event,))

    def join_tournament(self, caller: str, tournament_id: int) -> MutationResult[Tournament]:
        """Enroll caller in an OPEN tournament."""
        record = self.get_tournament(tournament_id)

        # finished implies started, so an ended record lands here too
        if record.started:
            raise AlreadyStartedError(tournament_id)

        if record.has_participant(caller):
            raise DuplicateJoinError(tournament_id, caller)

        updated = record.with_participant(caller)
        self._commit(updated)

        event = TournamentEvent(
            event_type=TournamentEventType.USER_JOINED,
            tournament_id=tournament_id,
            user_id=caller,
        )
        return MutationResult(value=updated, events=(event,))

    def start_tournament(self, caller: str, tournament_id: int) -> MutationResult[Tournament]:
        """Move an OPEN tournament with enough participants to STARTED."""
        require_owner(caller, self._owner)
        record = self.get_tournament(tournament_id)

        if record.started:
            raise AlreadyStartedError(tournament_id)

        if record.participant_count < record.min_users:
            raise InsufficientParticipantsError(
                tournament_id, record.participant_count, record.min_users
            )

        updated = record.as_started()
        self._commit(updated)

        event = TournamentEvent(
            event_type=TournamentEventType.TOURNAMENT_STARTED,
            tournament_id=tournament_id,
        )
        return MutationResult(value=updated, events=(event,))

    def end_tournament(
        self,
        caller: str,
        participants: Sequence[str],
        scores: Sequence[int],
        tournament_id: int,
    ) -> MutationResult[SettlementSummary]:
        """
        Settle a STARTED tournament and move it to ENDED.

        Check order: array lengths, owner, id, phase, then the entries
        themselves. The length check reads no state, which is why it may
        come before the owner check.
        """
        check_lengths(participants, scores)
        require_owner(caller, self._owner)
        record = self.get_tournament(tournament_id)

        if not record.started:
            raise NotActiveError(tournament_id)

        if record.finished:
            raise AlreadyFinishedError(tournament_id)

        summary = build_settlement(record, participants, scores)
        self._commit(record.as_settled(summary.scores))

        event = TournamentEvent(
            event_type=TournamentEventType.TOURNAMENT_ENDED,
            tournament_id=tournament_id,
        )
        return MutationResult(value=summary, events=(event,))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_active_tournaments(self) -> ActiveTournaments:
        return ActiveTournaments(self)

    def get_tournament_details(self, tournament_id: int) -> TournamentSummary:
        return self.get_tournament(tournament_id).to_summary()

    def get_participants(self, tournament_id: int) -> Tuple[str, ...]:
        return self.get_tournament(tournament_id).participants

    def get_player_score(self, participant: str, tournament_id: int) -> ScoreCard:
        record = self.get_tournament(tournament_id)
        settled = record.finished and participant in record.scores

        return ScoreCard(
            tournament_id=tournament_id,
            participant=participant,
            is_participant=record.has_participant(participant),
            settled=settled,
            score=record.scores[participant] if settled else None,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self._owner,
            "counter": self.counter,
            "revision": self._revision,
            "tournaments": [record.to_dict() for record in self._records],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TournamentRegistry":
        """
        Rebuild a registry, re-checking every record invariant.

        Raises:
            ValueError: if the data could not have been produced by a registry
        """
        if not isinstance(data.get("owner"), str):
            raise ValueError("owner must be a string")
        registry = cls(data["owner"])
        tournaments = data.get("tournaments", [])
        if not isinstance(tournaments, list):
            raise ValueError("tournaments must be a list")

        if data.get("counter", len(tournaments)) != len(tournaments):
            raise ValueError("counter does not match number of tournaments")

        for expected_id, raw in enumerate(tournaments):
            if not isinstance(raw, Mapping):
                raise ValueError(f"tournament {expected_id}: not an object")
            record = Tournament.from_dict(raw)
            _check_record(record, expected_id)
            registry._records.append(record)

        revision = data.get("revision", len(registry._records))
        if not _is_int(revision) or revision < len(registry._records):
            raise ValueError(f"invalid revision: {revision!r}")
        registry._revision = revision

        return registry


def _check_record(record: Tournament, expected_id: int) -> None:
    if not _is_int(record.tournament_id) or record.tournament_id != expected_id:
        raise ValueError(f"ids are not dense: expected {expected_id}, got {record.tournament_id}")
    if not _is_int(record.min_users) or record.min_users <= 0:
        raise ValueError(f"tournament {expected_id}: invalid min_users")
    if not isinstance(record.started, bool) or not isinstance(record.finished, bool):
        raise ValueError(f"tournament {expected_id}: started and finished must be booleans")
    if not all(isinstance(p, str) for p in record.participants):
        raise ValueError(f"tournament {expected_id}: participants must be strings")
    if len(set(record.participants)) != len(record.participants):
        raise ValueError(f"tournament {expected_id}: duplicate participants")
    if record.finished and not record.started:
        raise ValueError(f"tournament {expected_id}: finished but never started")
    if record.started and record.participant_count < record.min_users:
        raise ValueError(f"tournament {expected_id}: started below min_users")
    if record.scores and not record.finished:
        raise ValueError(f"tournament {expected_id}: scores before settlement")
    for participant, score in record.scores.items():
        if not record.has_participant(participant):
            raise ValueError(f"tournament {expected_id}: score for non-participant")
        if not _is_int(score):
            raise ValueError(f"tournament {expected_id}: non-integer score")
