"""Custom exception classes for ledger errors.

Provides structured error handling with error codes and caller-facing messages.
Every rejected operation raises one of the three families below and leaves the
registry untouched.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for ledger errors."""

    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"

    # Argument errors
    ZERO_THRESHOLD = "ZERO_THRESHOLD"
    UNKNOWN_ID = "UNKNOWN_ID"
    LENGTH_MISMATCH = "LENGTH_MISMATCH"
    DUPLICATE_PARTICIPANT = "DUPLICATE_PARTICIPANT"
    UNKNOWN_PARTICIPANT = "UNKNOWN_PARTICIPANT"
    INVALID_SCORE = "INVALID_SCORE"

    # Lifecycle errors
    DUPLICATE_JOIN = "DUPLICATE_JOIN"
    ALREADY_STARTED = "ALREADY_STARTED"
    INSUFFICIENT_PARTICIPANTS = "INSUFFICIENT_PARTICIPANTS"
    NOT_ACTIVE = "NOT_ACTIVE"
    ALREADY_FINISHED = "ALREADY_FINISHED"


class LedgerError(Exception):
    """Base exception for tournament ledger errors.

    Attributes:
        code: Error code for programmatic handling
        message: Caller-facing error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class Unauthorized(LedgerError):
    """Raised when the caller lacks the privilege for an owner-only operation."""

    def __init__(self, caller: str):
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message="Unauthorized: caller is not the owner",
            details={"caller": caller},
        )


class InvalidArgument(LedgerError):
    """Raised on malformed input: zero threshold, unknown id, bad arrays."""

    def __init__(
        self,
        code: ErrorCode,
        reason: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=code,
            message=f"InvalidArgument: {reason}",
            details=details,
        )
        self.reason = reason


class InvalidState(LedgerError):
    """Raised when the record's lifecycle phase forbids the operation."""

    def __init__(
        self,
        code: ErrorCode,
        reason: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=code,
            message=f"InvalidState: {reason}",
            details=details,
        )
        self.reason = reason


# =============================================================================
# Argument errors
# =============================================================================


class ZeroThresholdError(InvalidArgument):
    """Raised when a tournament is created with a non-positive threshold."""

    def __init__(self, min_users: Any):
        super().__init__(
            ErrorCode.ZERO_THRESHOLD,
            "zero threshold",
            details={"minUsers": min_users},
        )


class UnknownTournamentError(InvalidArgument):
    """Raised when a tournament id is outside 0..counter-1."""

    def __init__(self, tournament_id: Any, counter: int):
        super().__init__(
            ErrorCode.UNKNOWN_ID,
            "unknown id",
            details={"id": tournament_id, "counter": counter},
        )


class LengthMismatchError(InvalidArgument):
    """Raised when settlement participants and scores differ in length."""

    def __init__(self, participants: int, scores: int):
        super().__init__(
            ErrorCode.LENGTH_MISMATCH,
            "length mismatch",
            details={"participants": participants, "scores": scores},
        )


class DuplicateParticipantError(InvalidArgument):
    """Raised when the same identity is settled twice in one call."""

    def __init__(self, participant: str):
        super().__init__(
            ErrorCode.DUPLICATE_PARTICIPANT,
            "duplicate participant",
            details={"participant": participant},
        )


class UnknownParticipantError(InvalidArgument):
    """Raised when a settlement entry names a non-participant."""

    def __init__(self, participant: str):
        super().__init__(
            ErrorCode.UNKNOWN_PARTICIPANT,
            "unknown participant",
            details={"participant": participant},
        )


class InvalidScoreError(InvalidArgument):
    """Raised when a settlement score is not an integer."""

    def __init__(self, participant: str, score: Any):
        super().__init__(
            ErrorCode.INVALID_SCORE,
            "invalid score",
            details={"participant": participant, "score": repr(score)},
        )


# =============================================================================
# Lifecycle errors
# =============================================================================


class DuplicateJoinError(InvalidState):
    """Raised when a participant joins the same tournament twice."""

    def __init__(self, tournament_id: int, caller: str):
        super().__init__(
            ErrorCode.DUPLICATE_JOIN,
            "duplicate join",
            details={"id": tournament_id, "caller": caller},
        )


class AlreadyStartedError(InvalidState):
    """Raised when joining or starting a tournament that has started."""

    def __init__(self, tournament_id: int):
        super().__init__(
            ErrorCode.ALREADY_STARTED,
            "already started",
            details={"id": tournament_id},
        )


class InsufficientParticipantsError(InvalidState):
    """Raised when starting below the minimum participant count."""

    def __init__(self, tournament_id: int, current: int, required: int):
        super().__init__(
            ErrorCode.INSUFFICIENT_PARTICIPANTS,
            "insufficient participants",
            details={"id": tournament_id, "current": current, "required": required},
        )


class NotActiveError(InvalidState):
    """Raised when ending a tournament that never started."""

    def __init__(self, tournament_id: int):
        super().__init__(
            ErrorCode.NOT_ACTIVE,
            "not active",
            details={"id": tournament_id},
        )


class AlreadyFinishedError(InvalidState):
    """Raised when ending a tournament twice."""

    def __init__(self, tournament_id: int):
        super().__init__(
            ErrorCode.ALREADY_FINISHED,
            "already finished",
            details={"id": tournament_id},
        )
