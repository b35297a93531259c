"""Ledger Events — outbound audit records for every committed ledger mutation.

Invariants:
    - Events are immutable once built
    - Every event carries a human-readable audit message
    - Events reach sinks only after the operation that produced them committed

Design Decisions:
    - One builder function per event type: message wording lives in one place
    - to_dict() is JSON-safe (enum values, ISO timestamps) for persistence and API
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from crowdsale.core.domain_types import (
    Amount, ContributorId, LedgerEventType, Units,
)


@dataclass(frozen=True)
class LedgerEvent:
    """A single audit entry emitted by the ledger."""
    event_type: LedgerEventType
    amount: Amount
    message: str
    contributor: ContributorId | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type.value,
            "contributor": self.contributor,
            "amount": self.amount,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


def investment_recorded(
    contributor: ContributorId, amount: Amount, units: Units,
) -> LedgerEvent:
    return LedgerEvent(
        event_type=LedgerEventType.INVESTMENT_RECORDED,
        contributor=contributor,
        amount=amount,
        message=f"Investment of {amount} recorded for {contributor} ({units} units minted)",
    )


def objective_met(total_received: Amount, objective: Amount) -> LedgerEvent:
    return LedgerEvent(
        event_type=LedgerEventType.OBJECTIVE_MET,
        amount=total_received,
        message=(
            f"Funding objective met: received {total_received} of {objective}, "
            f"issued units released"
        ),
    )


def objective_not_met(total_received: Amount, objective: Amount) -> LedgerEvent:
    return LedgerEvent(
        event_type=LedgerEventType.OBJECTIVE_NOT_MET,
        amount=total_received,
        message=(
            f"Funding objective not met: received {total_received} of {objective}, "
            f"refunds enabled"
        ),
    )


def refund_issued(contributor: ContributorId, amount: Amount) -> LedgerEvent:
    return LedgerEvent(
        event_type=LedgerEventType.REFUND_ISSUED,
        contributor=contributor,
        amount=amount,
        message=f"Refund of {amount} issued to {contributor}",
    )
