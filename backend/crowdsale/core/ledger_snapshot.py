"""Ledger Snapshot — serialization / deserialization for LedgerState.

Invariants:
    - ledger_state_to_snapshot produces a JSON-safe dict (ISO datetimes, plain ints)
    - ledger_state_from_snapshot reconstructs an equal LedgerState
    - Zeroed (refunded) balances are kept: they distinguish "refunded" from "never invested"

Design Decisions:
    - Separate from ledger_state.py: persistence format is a shell concern that
      happens to be pure (ADR: one responsibility per module)
    - Missing flag keys fall back to LedgerState defaults (forward-compatible)
"""

from datetime import datetime

from crowdsale.core.domain_types import Amount, ContributorId
from crowdsale.core.ledger_state import LedgerState


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def ledger_state_to_snapshot(state: LedgerState) -> dict:
    """Serialize LedgerState to JSON-safe dict. Pure, no IO."""
    return {
        "owner": state.owner,
        "start_time": state.start_time.isoformat(),
        "end_time": state.end_time.isoformat(),
        "unit_price": state.unit_price,
        "funding_objective": state.funding_objective,
        "contributions": dict(state.contributions),
        "total_received": state.total_received,
        "total_refunded": state.total_refunded,
        "is_finalized": state.is_finalized,
        "is_refunding_allowed": state.is_refunding_allowed,
        "is_released": state.is_released,
        "finalized_at": (
            state.finalized_at.isoformat() if state.finalized_at else None
        ),
    }


def ledger_state_from_snapshot(data: dict) -> LedgerState:
    """Reconstruct LedgerState from snapshot dict. Pure, no IO.

    Raises KeyError when an identity/parameter field is missing: a snapshot
    without them cannot describe a crowdsale.
    """
    return LedgerState(
        owner=ContributorId(data["owner"]),
        start_time=datetime.fromisoformat(data["start_time"]),
        end_time=datetime.fromisoformat(data["end_time"]),
        unit_price=Amount(int(data["unit_price"])),
        funding_objective=Amount(int(data["funding_objective"])),
        contributions={
            ContributorId(k): Amount(int(v))
            for k, v in data.get("contributions", {}).items()
        },
        total_received=Amount(int(data.get("total_received", 0))),
        total_refunded=Amount(int(data.get("total_refunded", 0))),
        is_finalized=bool(data.get("is_finalized", False)),
        is_refunding_allowed=bool(data.get("is_refunding_allowed", False)),
        is_released=bool(data.get("is_released", False)),
        finalized_at=_parse_dt(data.get("finalized_at")),
    )
