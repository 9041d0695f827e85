"""Tests for the order status enum and its transition table."""

import itertools

import pytest

from seatorder.errors import UnknownStatusError
from seatorder.status import FINAL_STATUSES, Status

S = Status

# Written out independently of seatorder.status.TRANSITIONS
EXPECTED_EDGES = {
    S.CREATED: {S.PENDING_PAYMENT, S.CONFIRMED, S.CANCELLED, S.DECLINED},
    S.PENDING_PAYMENT: {S.PAYMENT_RECEIVED, S.PAYMENT_FAILED, S.CANCELLED, S.DECLINED},
    S.PAYMENT_RECEIVED: {S.PENDING_CONFIRMATION, S.CANCELLED, S.DECLINED},
    S.PENDING_CONFIRMATION: {S.CONFIRMED, S.CANCELLED, S.DECLINED},
    S.CONFIRMED: {S.PREPARING, S.ON_HOLD, S.CANCELLED},
    S.PREPARING: {S.READY_FOR_PICKUP, S.READY_FOR_DELIVERY, S.ON_HOLD, S.CANCELLED},
    S.ON_HOLD: {S.CONFIRMED, S.PREPARING, S.READY_FOR_PICKUP, S.READY_FOR_DELIVERY, S.CANCELLED},
    S.READY_FOR_PICKUP: {S.PICKED_UP, S.SERVED, S.CANCELLED},
    S.READY_FOR_DELIVERY: {S.OUT_FOR_DELIVERY, S.SERVED, S.CANCELLED},
    S.OUT_FOR_DELIVERY: {S.DELIVERED, S.DELIVERY_ATTEMPT_FAILED, S.CANCELLED},
    S.DELIVERY_ATTEMPT_FAILED: {S.OUT_FOR_DELIVERY, S.DELIVERED, S.CANCELLED},
    S.DELIVERED: {S.COMPLETED, S.REFUNDED, S.PARTIALLY_REFUNDED},
    S.PICKED_UP: {S.COMPLETED, S.REFUNDED, S.PARTIALLY_REFUNDED},
    S.SERVED: {S.COMPLETED, S.REFUNDED, S.PARTIALLY_REFUNDED},
    S.PAYMENT_FAILED: {S.CANCELLED},
    S.FAILED: {S.CANCELLED},
    S.PARTIALLY_REFUNDED: {S.REFUNDED, S.COMPLETED, S.CANCELLED},
    S.COMPLETED: set(),
    S.CANCELLED: set(),
    S.DECLINED: set(),
    S.REFUNDED: set(),
}


def test_there_are_21_statuses():
    assert len(list(Status)) == 21
    assert set(EXPECTED_EDGES) == set(Status)


@pytest.mark.parametrize(
    "source,target",
    list(itertools.product(list(Status), list(Status))),
    ids=lambda s: s.value,
)
def test_can_transition_to_matches_table(source, target):
    assert source.can_transition_to(target) is (target in EXPECTED_EDGES[source])


class TestPredicates:
    def test_is_final(self):
        assert {s for s in Status if s.is_final()} == {
            S.COMPLETED, S.CANCELLED, S.DECLINED, S.REFUNDED, S.FAILED, S.PAYMENT_FAILED,
        }
        assert FINAL_STATUSES == {s for s in Status if s.is_final()}

    def test_partially_refunded_is_not_final(self):
        assert not S.PARTIALLY_REFUNDED.is_final()

    def test_can_add_item(self):
        assert {s for s in Status if s.can_add_item()} == {
            S.CREATED, S.PENDING_PAYMENT, S.PENDING_CONFIRMATION, S.CONFIRMED, S.ON_HOLD,
        }

    def test_can_cancel(self):
        assert {s for s in Status if s.can_cancel()} == {
            S.CREATED, S.PENDING_PAYMENT, S.PENDING_CONFIRMATION, S.PREPARING,
            S.CONFIRMED, S.ON_HOLD, S.READY_FOR_PICKUP, S.READY_FOR_DELIVERY,
        }

    def test_is_fulfilled(self):
        assert {s for s in Status if s.is_fulfilled()} == {S.DELIVERED, S.PICKED_UP, S.SERVED}

    def test_is_in_preparation(self):
        assert {s for s in Status if s.is_in_preparation()} == {S.CONFIRMED, S.PREPARING, S.ON_HOLD}

    def test_is_ready_for_service(self):
        assert {s for s in Status if s.is_ready_for_service()} == {
            S.READY_FOR_PICKUP, S.READY_FOR_DELIVERY, S.OUT_FOR_DELIVERY,
        }


class TestFinalConsistency:
    def test_closed_final_statuses_have_no_edges(self):
        for status in (S.COMPLETED, S.CANCELLED, S.DECLINED, S.REFUNDED):
            assert status.allowed_targets() == frozenset()

    def test_failed_statuses_keep_table_edge_to_cancelled(self):
        # The table lists these edges even though update_status never reaches them
        assert S.PAYMENT_FAILED.is_final() and S.PAYMENT_FAILED.can_transition_to(S.CANCELLED)
        assert S.FAILED.is_final() and S.FAILED.can_transition_to(S.CANCELLED)

    def test_partially_refunded_is_only_non_final_settlement_status(self):
        settlement = {S.COMPLETED, S.CANCELLED, S.DECLINED, S.REFUNDED, S.PARTIALLY_REFUNDED, S.FAILED}
        assert {s for s in settlement if not s.is_final()} == {S.PARTIALLY_REFUNDED}
        assert S.PARTIALLY_REFUNDED.allowed_targets() == {S.REFUNDED, S.COMPLETED, S.CANCELLED}


class TestParse:
    def test_parse_string(self):
        assert Status.parse("on_hold") is S.ON_HOLD

    def test_parse_passthrough(self):
        assert Status.parse(S.SERVED) is S.SERVED

    def test_parse_unknown(self):
        with pytest.raises(UnknownStatusError):
            Status.parse("eaten")

    def test_str_is_value(self):
        assert str(S.READY_FOR_PICKUP) == "ready_for_pickup"
        assert f"{S.CREATED}" == "created"
