"""Escrow Vault — custody of contributed funds and the refund payment path.

Invariants:
    - balance == deposits - payouts, never negative
    - transfer() either pays in full or raises TransferFailedError with no change
    - Blocked recipients are always refused (operational kill-switch)

Design Decisions:
    - Satisfies core PaymentGateway protocol structurally (transfer)
    - Checks before mutation: the vault's own state is atomic, the ledger's
      rollback covers everything else
"""

import logging
from collections.abc import Iterable

from crowdsale.core.domain_types import Amount, ContributorId
from crowdsale.core.errors import InvalidAmountError, TransferFailedError

logger = logging.getLogger(__name__)


class EscrowVault:
    """Holds contributions for one crowdsale and pays refunds out of them."""

    def __init__(self, blocked_recipients: Iterable[str] = ()) -> None:
        self.balance: Amount = Amount(0)
        self.paid_out: dict[ContributorId, Amount] = {}
        self.blocked_recipients: frozenset[str] = frozenset(blocked_recipients)

    def deposit(self, amount: Amount) -> None:
        if amount <= 0:
            raise InvalidAmountError(amount)
        self.balance = Amount(self.balance + amount)

    def transfer(self, recipient: ContributorId, amount: Amount) -> None:
        if recipient in self.blocked_recipients:
            raise TransferFailedError(recipient, amount, "recipient is blocked")
        if amount > self.balance:
            raise TransferFailedError(
                recipient, amount, f"escrow holds only {self.balance}",
            )
        self.balance = Amount(self.balance - amount)
        self.paid_out[recipient] = Amount(self.paid_out.get(recipient, 0) + amount)
        logger.info(
            f"Paid {amount} to {recipient}",
            extra={"contributor": recipient, "amount": amount},
        )

    def to_snapshot(self) -> dict:
        return {"balance": self.balance, "paid_out": dict(self.paid_out)}

    @classmethod
    def from_snapshot(
        cls, data: dict, blocked_recipients: Iterable[str] = (),
    ) -> "EscrowVault":
        vault = cls(blocked_recipients)
        vault.balance = Amount(int(data.get("balance", 0)))
        vault.paid_out = {
            ContributorId(k): Amount(int(v))
            for k, v in data.get("paid_out", {}).items()
        }
        return vault
