import pytest

from parcel_tracker.exceptions import InvalidStatusTransitionError
from parcel_tracker.models import DeliveryStatus as S
from parcel_tracker.simulator.status_machine import (
    allowed_next_statuses,
    is_terminal,
    is_valid_transition,
    remaining_stages,
    status_progress,
    validate_transition,
)


def test_forward_progression_is_valid():
    assert is_valid_transition(S.PENDING, S.COLLECTED)
    assert is_valid_transition(S.COLLECTED, S.IN_TRANSIT)
    assert is_valid_transition(S.IN_TRANSIT, S.OUT_FOR_DELIVERY)
    assert is_valid_transition(S.OUT_FOR_DELIVERY, S.DELIVERED)
    # Skipping ahead is allowed
    assert is_valid_transition(S.PENDING, S.DELIVERED)


def test_backward_progression_is_invalid():
    assert not is_valid_transition(S.IN_TRANSIT, S.COLLECTED)
    assert not is_valid_transition(S.OUT_FOR_DELIVERY, S.PENDING)


def test_same_status_is_a_noop_transition():
    assert is_valid_transition(S.IN_TRANSIT, S.IN_TRANSIT)


def test_final_statuses_have_no_exit():
    for target in S:
        if target not in (S.DELIVERED, S.RETURNED):
            assert not is_valid_transition(S.DELIVERED, target)
            assert not is_valid_transition(S.RETURNED, target)
    assert allowed_next_statuses(S.DELIVERED) == []
    assert allowed_next_statuses(S.RETURNED) == []


def test_exception_statuses_reachable_from_active():
    for current in (S.PENDING, S.COLLECTED, S.IN_TRANSIT, S.OUT_FOR_DELIVERY):
        assert is_valid_transition(current, S.FAILED)
        assert is_valid_transition(current, S.RETURNED)


def test_failed_allows_retry_only_through_in_transit():
    assert is_valid_transition(S.FAILED, S.IN_TRANSIT)
    assert is_valid_transition(S.FAILED, S.RETURNED)
    assert not is_valid_transition(S.FAILED, S.DELIVERED)
    assert not is_valid_transition(S.FAILED, S.PENDING)


def test_validate_transition_raises():
    with pytest.raises(InvalidStatusTransitionError):
        validate_transition(S.DELIVERED, S.IN_TRANSIT)
    validate_transition("pending", "collected")


def test_remaining_stages():
    assert remaining_stages(S.PENDING) == [S.COLLECTED, S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.DELIVERED]
    assert remaining_stages(S.IN_TRANSIT) == [S.OUT_FOR_DELIVERY, S.DELIVERED]
    for status in (S.DELIVERED, S.FAILED, S.RETURNED):
        assert remaining_stages(status) == []
        assert is_terminal(status)


def test_status_progress_bounds():
    assert status_progress(S.PENDING) == 0
    assert status_progress(S.DELIVERED) == 100
    assert status_progress("in_transit") == 50
