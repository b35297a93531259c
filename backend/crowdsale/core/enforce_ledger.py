"""Ledger Precondition Enforcement — validates every operation before it mutates state.

Invariants:
    - All functions are PURE: no IO, no side effects, no state mutation
    - Return the error on violation, None on success (the ledger raises it)
    - validate_* functions chain checks, first error wins
    - finalize checks AlreadyFinalized before NotOwner: a second finalize
      rejects with AlreadyFinalized regardless of caller

Design Decisions:
    - Return errors (not raise): the chain reads as one expression and the
      ledger keeps a single raise site that also logs the rejection
    - Time window (start_time/end_time) is checked at construction only;
      invest deliberately does not enforce it
    - Naive datetimes are rejected, not assumed UTC: the HTTP schema is the
      layer that decides how to read naive input
"""

from datetime import datetime

from crowdsale.core.domain_types import Amount, ContributorId
from crowdsale.core.errors import (
    AlreadyFinalizedError,
    ConstructionInvalidError,
    CrowdsaleError,
    InvalidAmountError,
    NoFundsToRefundError,
    NotOwnerError,
    RefundNotAllowedError,
)
from crowdsale.core.ledger_state import LedgerState


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


# ─── Construction ────────────────────────────────────────────────

def check_timezone_aware(
    start_time: datetime, end_time: datetime,
) -> CrowdsaleError | None:
    """Naive datetimes cannot be ordered against the UTC clock."""
    for field, value in (("start_time", start_time), ("end_time", end_time)):
        if value.utcoffset() is None:
            return ConstructionInvalidError(f"{field} must be timezone-aware", field)
    return None


def check_start_time(start_time: datetime, now: datetime) -> CrowdsaleError | None:
    if start_time < now:
        return ConstructionInvalidError(
            f"start_time {start_time.isoformat()} is in the past", "start_time",
        )
    return None


def check_end_time(start_time: datetime, end_time: datetime) -> CrowdsaleError | None:
    if end_time < start_time:
        return ConstructionInvalidError(
            "end_time must not be before start_time", "end_time",
        )
    return None


def check_unit_price(unit_price: object) -> CrowdsaleError | None:
    if not _is_positive_int(unit_price):
        return ConstructionInvalidError(
            f"unit_price must be a positive integer, got {unit_price!r}", "unit_price",
        )
    return None


def check_funding_objective(objective: object) -> CrowdsaleError | None:
    if not _is_positive_int(objective):
        return ConstructionInvalidError(
            f"funding_objective must be a positive integer, got {objective!r}",
            "funding_objective",
        )
    return None


def validate_construction(
    start_time: datetime,
    end_time: datetime,
    unit_price: object,
    funding_objective: object,
    now: datetime,
) -> CrowdsaleError | None:
    """Chain all construction checks. Returns first error or None."""
    return (
        check_timezone_aware(start_time, end_time)
        or check_start_time(start_time, now)
        or check_end_time(start_time, end_time)
        or check_unit_price(unit_price)
        or check_funding_objective(funding_objective)
    )


# ─── Invest ──────────────────────────────────────────────────────

def check_amount(amount: object) -> CrowdsaleError | None:
    if not _is_positive_int(amount):
        return InvalidAmountError(amount)
    return None


# ─── Finalize ────────────────────────────────────────────────────

def check_not_finalized(state: LedgerState) -> CrowdsaleError | None:
    if state.is_finalized:
        return AlreadyFinalizedError()
    return None


def check_owner(state: LedgerState, caller: ContributorId) -> CrowdsaleError | None:
    if caller != state.owner:
        return NotOwnerError(caller)
    return None


def validate_finalize(
    state: LedgerState, caller: ContributorId,
) -> CrowdsaleError | None:
    return check_not_finalized(state) or check_owner(state, caller)


# ─── Refund ──────────────────────────────────────────────────────

def check_refunding_allowed(state: LedgerState) -> CrowdsaleError | None:
    if not state.is_refunding_allowed:
        return RefundNotAllowedError()
    return None


def check_has_funds(
    state: LedgerState, contributor: ContributorId,
) -> CrowdsaleError | None:
    if state.contribution_of(contributor) <= Amount(0):
        return NoFundsToRefundError(contributor)
    return None


def validate_refund(
    state: LedgerState, caller: ContributorId,
) -> CrowdsaleError | None:
    return check_refunding_allowed(state) or check_has_funds(state, caller)
