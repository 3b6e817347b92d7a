"""Ledger error taxonomy tests."""

import pytest

from tournament_ledger.utils.errors import (
    AlreadyFinishedError,
    DuplicateJoinError,
    ErrorCode,
    InvalidArgument,
    InvalidState,
    LedgerError,
    LengthMismatchError,
    Unauthorized,
    UnknownTournamentError,
    ZeroThresholdError,
)


class TestErrorFamilies:
    @pytest.mark.parametrize(
        "error, family",
        [
            (ZeroThresholdError(0), InvalidArgument),
            (UnknownTournamentError(5, 2), InvalidArgument),
            (LengthMismatchError(2, 1), InvalidArgument),
            (DuplicateJoinError(0, "0xa"), InvalidState),
            (AlreadyFinishedError(0), InvalidState),
            (Unauthorized("0xa"), LedgerError),
        ],
    )
    def test_family(self, error, family):
        assert isinstance(error, family)
        assert isinstance(error, LedgerError)

    def test_families_are_disjoint(self):
        assert not issubclass(InvalidArgument, InvalidState)
        assert not issubclass(InvalidState, InvalidArgument)
        assert not issubclass(Unauthorized, (InvalidArgument, InvalidState))


class TestErrorPayload:
    def test_message_carries_family_and_reason(self):
        error = DuplicateJoinError(3, "0xa")
        assert str(error) == "InvalidState: duplicate join"
        assert error.reason == "duplicate join"

    def test_code_is_plain_string(self):
        error = ZeroThresholdError(0)
        assert error.code == "ZERO_THRESHOLD"
        assert error.code == ErrorCode.ZERO_THRESHOLD.value

    def test_to_dict(self):
        error = UnknownTournamentError(9, 2)
        assert error.to_dict() == {
            "code": "UNKNOWN_ID",
            "message": "InvalidArgument: unknown id",
            "details": {"id": 9, "counter": 2},
        }

    def test_unauthorized_message(self):
        error = Unauthorized("0xmallory")
        assert error.message == "Unauthorized: caller is not the owner"
        assert error.details == {"caller": "0xmallory"}
