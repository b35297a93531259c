"""Token Issuer — in-process token that holds minted units locked until release.

Invariants:
    - Created with zero supply; total_supply == sum of all balances
    - mint() only credits balances, it never moves units between holders
    - transfer() raises TokenLockedError until release() has been called
    - released never returns to False

Design Decisions:
    - Satisfies core TokenIssuer protocol structurally (mint/release); transfer and
      balance queries are called by the service (unit transfers, contribution
      queries), never by the ledger
    - to_snapshot/from_snapshot keep the token restorable alongside the ledger
"""

import logging

from crowdsale.core.domain_types import ContributorId, Units
from crowdsale.core.errors import InsufficientUnitsError, InvalidAmountError, TokenLockedError

logger = logging.getLogger(__name__)


class InMemoryTokenIssuer:
    """Mint-then-release token owned by a single crowdsale ledger."""

    def __init__(self) -> None:
        self._balances: dict[ContributorId, Units] = {}
        self.total_supply: Units = Units(0)
        self.released: bool = False

    def mint(self, beneficiary: ContributorId, amount: Units) -> None:
        if amount < 0:
            raise InvalidAmountError(amount)
        self._balances[beneficiary] = Units(self.balance_of(beneficiary) + amount)
        self.total_supply = Units(self.total_supply + amount)
        logger.debug(f"Minted {amount} locked units to {beneficiary}")

    def release(self) -> None:
        self.released = True
        logger.info(f"Token released: {self.total_supply} units now transferable")

    def balance_of(self, holder: ContributorId) -> Units:
        return self._balances.get(holder, Units(0))

    def transfer(
        self, sender: ContributorId, recipient: ContributorId, amount: Units,
    ) -> None:
        if not self.released:
            raise TokenLockedError()
        if amount <= 0:
            raise InvalidAmountError(amount)
        available = self.balance_of(sender)
        if amount > available:
            raise InsufficientUnitsError(sender, amount, available)
        self._balances[sender] = Units(available - amount)
        self._balances[recipient] = Units(self.balance_of(recipient) + amount)

    def to_snapshot(self) -> dict:
        return {
            "balances": dict(self._balances),
            "total_supply": self.total_supply,
            "released": self.released,
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> "InMemoryTokenIssuer":
        issuer = cls()
        issuer._balances = {
            ContributorId(k): Units(int(v))
            for k, v in data.get("balances", {}).items()
        }
        issuer.total_supply = Units(int(data.get("total_supply", 0)))
        issuer.released = bool(data.get("released", False))
        return issuer
