"""Ledger Enforcement — tests for pure precondition checks.

Tests cover:
    - Construction checks and their chaining order
    - check_amount accepts only positive ints
    - validate_finalize: AlreadyFinalized wins over NotOwner
    - validate_refund: RefundNotAllowed wins over NoFundsToRefund
"""

from datetime import timedelta

from crowdsale.core.enforce_ledger import (
    check_amount,
    check_end_time,
    check_funding_objective,
    check_has_funds,
    check_owner,
    check_start_time,
    check_timezone_aware,
    check_unit_price,
    validate_construction,
    validate_finalize,
    validate_refund,
)
from crowdsale.core.ledger_state import LedgerState
from tests.core.ledger_doubles import ALICE, NOW, OWNER


def _make_state(**overrides) -> LedgerState:
    """Helper: open state with a 100 unit price and 1000 objective."""
    fields = dict(
        owner=OWNER,
        start_time=NOW,
        end_time=NOW + timedelta(days=1),
        unit_price=100,
        funding_objective=1000,
    )
    fields.update(overrides)
    return LedgerState(**fields)


# ─── Construction ────────────────────────────────────────────────

def test_start_time_in_future_ok():
    assert check_start_time(NOW + timedelta(minutes=1), NOW) is None


def test_start_time_in_past_rejected():
    error = check_start_time(NOW - timedelta(minutes=1), NOW)
    assert error is not None
    assert error.field == "start_time"


def test_end_time_equal_to_start_ok():
    assert check_end_time(NOW, NOW) is None


def test_end_time_before_start_rejected():
    error = check_end_time(NOW, NOW - timedelta(seconds=1))
    assert error is not None
    assert error.field == "end_time"


def test_unit_price_and_objective_must_be_positive_ints():
    assert check_unit_price(1) is None
    assert check_unit_price(0) is not None
    assert check_unit_price(1.5) is not None
    assert check_funding_objective(10) is None
    assert check_funding_objective(-1) is not None
    assert check_funding_objective(False) is not None


def test_naive_datetimes_rejected():
    naive = NOW.replace(tzinfo=None)
    assert check_timezone_aware(naive, NOW).field == "start_time"
    assert check_timezone_aware(NOW, naive).field == "end_time"
    assert check_timezone_aware(NOW, NOW) is None


def test_validate_construction_first_error_wins():
    error = validate_construction(
        NOW - timedelta(days=1), NOW - timedelta(days=2), 0, 0, NOW,
    )
    assert error.field == "start_time"


def test_validate_construction_ok():
    assert validate_construction(NOW, NOW + timedelta(days=1), 100, 1000, NOW) is None


# ─── Amount ──────────────────────────────────────────────────────

def test_check_amount():
    assert check_amount(1) is None
    assert check_amount(0).code == "INVALID_AMOUNT"
    assert check_amount(-1).code == "INVALID_AMOUNT"
    assert check_amount(None).code == "INVALID_AMOUNT"


# ─── Finalize ────────────────────────────────────────────────────

def test_check_owner():
    state = _make_state()
    assert check_owner(state, OWNER) is None
    assert check_owner(state, ALICE).code == "NOT_OWNER"


def test_validate_finalize_open_state_by_owner_ok():
    assert validate_finalize(_make_state(), OWNER) is None


def test_validate_finalize_already_finalized_beats_not_owner():
    state = _make_state(is_finalized=True)
    assert validate_finalize(state, ALICE).code == "ALREADY_FINALIZED"


# ─── Refund ──────────────────────────────────────────────────────

def test_validate_refund_requires_refunding_first():
    state = _make_state(contributions={ALICE: 0})
    assert validate_refund(state, ALICE).code == "REFUND_NOT_ALLOWED"


def test_validate_refund_requires_positive_balance():
    state = _make_state(
        is_finalized=True, is_refunding_allowed=True, contributions={ALICE: 0},
    )
    assert validate_refund(state, ALICE).code == "NO_FUNDS_TO_REFUND"


def test_check_has_funds_ok_with_balance():
    state = _make_state(contributions={ALICE: 5})
    assert check_has_funds(state, ALICE) is None
