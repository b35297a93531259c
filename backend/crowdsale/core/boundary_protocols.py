"""Boundary Protocols — contracts between the ledger core and its collaborators.

Invariants:
    - Core NEVER imports from the shell; dependency arrows point inward only
    - Token issuer exposes exactly mint() and release(); nothing else is relied upon
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no base class
    - Synchronous methods: the ledger runs each operation to completion without
      suspension, so its collaborators are called as single blocking steps
"""

from typing import Protocol

from crowdsale.core.domain_types import Amount, ContributorId, Units
from crowdsale.core.ledger_events import LedgerEvent


class TokenIssuer(Protocol):
    """External token collaborator — created per crowdsale with zero supply."""
    def mint(self, beneficiary: ContributorId, amount: Units) -> None: ...
    def release(self) -> None: ...


class PaymentGateway(Protocol):
    """Pays funds back out to a contributor. Raises on failure."""
    def transfer(self, recipient: ContributorId, amount: Amount) -> None: ...


class EventSink(Protocol):
    """Receives committed ledger events. Must not raise."""
    def publish(self, event: LedgerEvent) -> None: ...
