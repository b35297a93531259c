"""Ledger State — the data half of the crowdsale ledger.

Invariants:
    - contributions has unique contributor keys; order is irrelevant
    - total_received == sum(contributions) + total_refunded at all times
    - is_released and is_refunding_allowed are never both True
    - is_finalized never returns to False once set

Design Decisions:
    - Dataclass with computed properties: pure, deterministic, testable without mocks
    - copy() gives the ledger a cheap rollback point (dict is the only mutable field)
"""

from dataclasses import dataclass, field, replace
from datetime import datetime

from crowdsale.core.domain_types import Amount, ContributorId, SaleStatus


@dataclass
class LedgerState:
    """Per-crowdsale accounting state — pure dataclass, no IO."""

    owner: ContributorId
    start_time: datetime
    end_time: datetime
    unit_price: Amount
    funding_objective: Amount

    # Contributor -> cumulative amount still held by the ledger
    contributions: dict[ContributorId, Amount] = field(default_factory=dict)

    total_received: Amount = Amount(0)
    total_refunded: Amount = Amount(0)

    is_finalized: bool = False
    is_refunding_allowed: bool = False
    # Set when finalize instructed the issuer to release
    is_released: bool = False
    finalized_at: datetime | None = None

    @property
    def status(self) -> SaleStatus:
        if not self.is_finalized:
            return SaleStatus.OPEN
        if self.is_refunding_allowed:
            return SaleStatus.FINALIZED_REFUNDING
        return SaleStatus.FINALIZED_RELEASED

    @property
    def objective_met(self) -> bool:
        return self.total_received >= self.funding_objective

    @property
    def outstanding_balance(self) -> Amount:
        """Sum of balances not yet refunded."""
        return Amount(sum(self.contributions.values()))

    @property
    def contributor_count(self) -> int:
        return sum(1 for v in self.contributions.values() if v > 0)

    def contribution_of(self, contributor: ContributorId) -> Amount:
        return self.contributions.get(contributor, Amount(0))

    def copy(self) -> "LedgerState":
        return replace(self, contributions=dict(self.contributions))
