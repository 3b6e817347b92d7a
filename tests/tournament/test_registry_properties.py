"""Property-based tests for the tournament registry.

Random operation sequences from a small pool of identities, checked against
the ledger invariants after every step.
"""

from __future__ import annotations

from hypothesis import given, settings, strategies as st

from tournament_ledger.tournament.registry import TournamentRegistry
from tournament_ledger.utils.errors import (
    InvalidArgument,
    InvalidState,
    LedgerError,
    Unauthorized,
)

OWNER = "owner"
IDENTITIES = [OWNER, "u1", "u2", "u3", "u4"]


# =============================================================================
# Strategies
# =============================================================================

identity = st.sampled_from(IDENTITIES)
tournament_ref = st.integers(min_value=-1, max_value=6)

create_op = st.tuples(st.just("create"), identity, st.integers(min_value=-1, max_value=4))
join_op = st.tuples(st.just("join"), identity, tournament_ref)
start_op = st.tuples(st.just("start"), identity, tournament_ref)
end_op = st.tuples(
    st.just("end"),
    identity,
    tournament_ref,
    st.lists(identity, max_size=4),
    st.lists(st.integers(min_value=-10, max_value=10), max_size=4),
)

operations = st.lists(st.one_of(create_op, join_op, start_op, end_op), max_size=40)


def apply(registry: TournamentRegistry, op) -> None:
    kind = op[0]
    if kind == "create":
        registry.create_tournament(op[1], op[2])
    elif kind == "join":
        registry.join_tournament(op[1], op[2])
    elif kind == "start":
        registry.start_tournament(op[1], op[2])
    else:
        registry.end_tournament(op[1], op[3], op[4], op[2])


def check_invariants(registry: TournamentRegistry) -> None:
    records = registry.records()
    assert registry.counter == len(records)

    for expected_id, record in enumerate(records):
        assert record.tournament_id == expected_id
        assert record.min_users > 0
        assert len(set(record.participants)) == len(record.participants)
        if record.finished:
            assert record.started
        if record.started:
            assert record.participant_count >= record.min_users
        assert set(record.scores) <= set(record.participants)

    active = registry.get_active_tournaments().ids()
    assert active == [r.tournament_id for r in records if not r.finished]


# =============================================================================
# Property Tests
# =============================================================================


class TestRegistryProperties:
    @settings(max_examples=200)
    @given(ops=operations)
    def test_invariants_hold_after_every_step(self, ops):
        """Property: every reachable state satisfies the record invariants."""
        registry = TournamentRegistry(OWNER)
        for op in ops:
            try:
                apply(registry, op)
            except LedgerError:
                pass
            check_invariants(registry)

    @settings(max_examples=200)
    @given(ops=operations)
    def test_counter_counts_successful_creates(self, ops):
        """Property: counter equals the number of successful creates and never decreases."""
        registry = TournamentRegistry(OWNER)
        creates = 0
        last_counter = 0
        for op in ops:
            try:
                apply(registry, op)
                if op[0] == "create":
                    creates += 1
            except LedgerError:
                pass
            assert registry.counter >= last_counter
            last_counter = registry.counter
        assert registry.counter == creates

    @settings(max_examples=200)
    @given(ops=operations)
    def test_failed_operation_changes_nothing(self, ops):
        """Property: a rejected operation leaves the registry exactly as it was."""
        registry = TournamentRegistry(OWNER)
        for op in ops:
            before = registry.to_dict()
            try:
                apply(registry, op)
            except LedgerError:
                assert registry.to_dict() == before

    @settings(max_examples=200)
    @given(ops=operations, caller=identity)
    def test_finished_is_terminal(self, ops, caller):
        """Property: join, start and a well-formed end all fail after settlement."""
        registry = TournamentRegistry(OWNER)
        for op in ops:
            try:
                apply(registry, op)
            except LedgerError:
                pass

        for record in registry.records():
            if not record.finished:
                continue
            tid = record.tournament_id
            try:
                registry.join_tournament(caller, tid)
            except InvalidState:
                pass
            else:
                raise AssertionError("join succeeded on a finished tournament")

            try:
                registry.start_tournament(OWNER, tid)
            except InvalidState:
                pass
            else:
                raise AssertionError("start succeeded on a finished tournament")

            try:
                registry.end_tournament(OWNER, [], [], tid)
            except InvalidState:
                pass
            else:
                raise AssertionError("end succeeded on a finished tournament")

    @given(
        caller=identity,
        tid=tournament_ref,
        users=st.lists(identity, max_size=4),
        scores=st.lists(st.integers(), max_size=4),
    )
    def test_end_length_mismatch_always_invalid_argument(self, caller, tid, users, scores):
        """Property: differing array lengths fail as InvalidArgument for any caller and id."""
        if len(users) == len(scores):
            scores = scores + [0]

        registry = TournamentRegistry(OWNER)
        registry.create_tournament(OWNER, 1)
        try:
            registry.end_tournament(caller, users, scores, tid)
        except InvalidArgument as e:
            assert e.reason == "length mismatch"
        except Unauthorized:
            raise AssertionError("identity checked before array lengths")
        else:
            raise AssertionError("length mismatch accepted")

    @settings(max_examples=100)
    @given(ops=operations)
    def test_start_succeeds_iff_open_and_threshold_met(self, ops):
        """Property: owner start succeeds exactly for open records at threshold."""
        registry = TournamentRegistry(OWNER)
        for op in ops:
            try:
                apply(registry, op)
            except LedgerError:
                pass

        for record in registry.records():
            eligible = not record.started and record.participant_count >= record.min_users
            try:
                registry.start_tournament(OWNER, record.tournament_id)
                assert eligible
            except InvalidState:
                assert not eligible
