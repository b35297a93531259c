"""Crowdsale Ledger — pooled contributions resolved to token release or full refund.

Invariants:
    - Every public operation is all-or-nothing: a rejected or failed call leaves
      state exactly as it was and publishes no events
    - finalize runs at most once and picks exactly one branch:
      issuer.release() (objective met) or refunding (objective missed)
    - refund zeroes the balance and books total_refunded BEFORE the payment
      transfer; a reentrant refund during the transfer sees a zero balance
    - unit_price and funding_objective are fixed at construction (read-only properties)
    - Units minted per investment = amount // unit_price; the remainder is not tracked

Design Decisions:
    - Owner check is an explicit caller argument compared to the stored owner
      (ADR: capability passed in, no access-control base class)
    - Rollback by state copy: LedgerState is small and copy() is O(contributors)
    - Events buffered per operation and published after commit, so a failed
      transfer never leaves a RefundIssued event behind
    - invest is not blocked after finalize and does not check the time window;
      both are open questions kept as observed behavior (see DESIGN.md)
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from crowdsale.core.boundary_protocols import EventSink, PaymentGateway, TokenIssuer
from crowdsale.core.domain_types import (
    Amount, ContributorId, LedgerOperation, SaleStatus, Units,
)
from crowdsale.core.enforce_ledger import (
    check_amount, validate_construction, validate_finalize, validate_refund,
)
from crowdsale.core.errors import CrowdsaleError, TransferFailedError
from crowdsale.core.ledger_events import (
    LedgerEvent, investment_recorded, objective_met, objective_not_met, refund_issued,
)
from crowdsale.core.ledger_state import LedgerState

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CrowdsaleLedger:
    """Accounting map plus finalize/refund state machine for one crowdsale."""

    def __init__(
        self,
        owner: ContributorId,
        start_time: datetime,
        end_time: datetime,
        unit_price: Amount,
        funding_objective: Amount,
        *,
        issuer: TokenIssuer,
        payments: PaymentGateway,
        sinks: Iterable[EventSink] = (),
        clock: Callable[[], datetime] = _utcnow,
        sale_id: str | None = None,
    ):
        error = validate_construction(
            start_time, end_time, unit_price, funding_objective, clock(),
        )
        if error is not None:
            error.context.operation = LedgerOperation.CONSTRUCT.value
            error.context.sale_id = sale_id
            logger.warning(
                f"Crowdsale construction rejected: {error.message}",
                extra={"error_code": error.code, "sale_id": sale_id},
            )
            raise error
        state = LedgerState(
            owner=owner,
            start_time=start_time,
            end_time=end_time,
            unit_price=unit_price,
            funding_objective=funding_objective,
        )
        self._bind(state, issuer, payments, sinks, clock, sale_id)

    @classmethod
    def from_state(
        cls,
        state: LedgerState,
        *,
        issuer: TokenIssuer,
        payments: PaymentGateway,
        sinks: Iterable[EventSink] = (),
        clock: Callable[[], datetime] = _utcnow,
        sale_id: str | None = None,
    ) -> "CrowdsaleLedger":
        """Rebuild a ledger from persisted state. Construction checks are not re-run."""
        ledger = cls.__new__(cls)
        ledger._bind(state.copy(), issuer, payments, sinks, clock, sale_id)
        return ledger

    def _bind(self, state, issuer, payments, sinks, clock, sale_id) -> None:
        self._state = state
        self._issuer = issuer
        self._payments = payments
        self._sinks: list[EventSink] = list(sinks)
        self._clock = clock
        self._sale_id = sale_id

    # ─── Public fields (read-only) ───────────────────────────────

    @property
    def owner(self) -> ContributorId:
        return self._state.owner

    @property
    def start_time(self) -> datetime:
        return self._state.start_time

    @property
    def end_time(self) -> datetime:
        return self._state.end_time

    @property
    def unit_price(self) -> Amount:
        return self._state.unit_price

    @property
    def funding_objective(self) -> Amount:
        return self._state.funding_objective

    @property
    def is_finalized(self) -> bool:
        return self._state.is_finalized

    @property
    def is_refunding_allowed(self) -> bool:
        return self._state.is_refunding_allowed

    @property
    def total_received(self) -> Amount:
        return self._state.total_received

    @property
    def total_refunded(self) -> Amount:
        return self._state.total_refunded

    @property
    def status(self) -> SaleStatus:
        return self._state.status

    @property
    def issuer(self) -> TokenIssuer:
        return self._issuer

    @property
    def state(self) -> LedgerState:
        """Detached copy of the current state (for snapshots and queries)."""
        return self._state.copy()

    def contribution_of(self, contributor: ContributorId) -> Amount:
        return self._state.contribution_of(contributor)

    # ─── Operations ──────────────────────────────────────────────

    def invest(self, contributor: ContributorId, amount: Amount) -> Units:
        """Record a contribution and mint amount // unit_price units to the contributor."""
        self._raise_if(check_amount(amount), LedgerOperation.INVEST, contributor)
        if self._state.is_finalized:
            logger.warning(
                f"Investment accepted after finalization ({self._state.status.value})",
                extra={"sale_id": self._sale_id, "contributor": contributor},
            )

        with self._atomic(LedgerOperation.INVEST) as pending:
            state = self._state
            state.contributions[contributor] = Amount(
                state.contribution_of(contributor) + amount,
            )
            state.total_received = Amount(state.total_received + amount)
            units = Units(amount // state.unit_price)
            self._issuer.mint(contributor, units)
            pending.append(investment_recorded(contributor, amount, units))
        return units

    def finalize(self, caller: ContributorId) -> SaleStatus:
        """Owner-only, once: release issued units or open refunds."""
        self._raise_if(
            validate_finalize(self._state, caller), LedgerOperation.FINALIZE, caller,
        )

        with self._atomic(LedgerOperation.FINALIZE) as pending:
            state = self._state
            if state.objective_met:
                self._issuer.release()
                state.is_released = True
                pending.append(
                    objective_met(state.total_received, state.funding_objective),
                )
            else:
                state.is_refunding_allowed = True
                pending.append(
                    objective_not_met(state.total_received, state.funding_objective),
                )
            state.is_finalized = True
            state.finalized_at = self._clock()
        return self._state.status

    def refund(self, caller: ContributorId) -> Amount:
        """Pay the caller's whole balance back. Effects are booked before the transfer."""
        self._raise_if(
            validate_refund(self._state, caller), LedgerOperation.REFUND, caller,
        )

        with self._atomic(LedgerOperation.REFUND) as pending:
            state = self._state
            amount = state.contribution_of(caller)
            state.contributions[caller] = Amount(0)
            state.total_refunded = Amount(state.total_refunded + amount)
            pending.append(refund_issued(caller, amount))
            self._pay(caller, amount)
        return amount

    # ─── Helpers ─────────────────────────────────────────────────

    @contextmanager
    def _atomic(self, operation: LedgerOperation) -> Iterator[list[LedgerEvent]]:
        """Apply a mutation all-or-nothing; publish its events only after it commits."""
        saved = self._state.copy()
        pending: list[LedgerEvent] = []
        try:
            yield pending
        except Exception as e:
            self._state = saved
            if isinstance(e, CrowdsaleError) and e.context.operation is None:
                e.context.operation = operation.value
                e.context.sale_id = self._sale_id
            logger.warning(
                f"{operation.value} rolled back: {e}",
                extra={
                    "sale_id": self._sale_id,
                    "error_code": getattr(e, "code", type(e).__name__),
                },
            )
            raise
        for event in pending:
            self._publish(event)

    def _pay(self, recipient: ContributorId, amount: Amount) -> None:
        try:
            self._payments.transfer(recipient, amount)
        except TransferFailedError:
            raise
        except Exception as e:
            raise TransferFailedError(recipient, amount, str(e)) from e

    def _publish(self, event: LedgerEvent) -> None:
        logger.info(
            event.message,
            extra={
                "sale_id": self._sale_id,
                "event_type": event.event_type.value,
                "contributor": event.contributor,
                "amount": event.amount,
            },
        )
        for sink in self._sinks:
            sink.publish(event)

    def _raise_if(
        self,
        error: CrowdsaleError | None,
        operation: LedgerOperation,
        caller: ContributorId,
    ) -> None:
        if error is None:
            return
        error.context.operation = operation.value
        error.context.contributor = caller
        error.context.sale_id = self._sale_id
        logger.warning(
            f"{operation.value} rejected: {error.message}",
            extra={
                "sale_id": self._sale_id,
                "contributor": caller,
                "error_code": error.code,
            },
        )
        raise error
