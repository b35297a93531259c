"""Crowdsale Service — live ledger registry plus persistence around every operation.

Invariants:
    - _ledgers holds at most one live handle per crowdsale; it is authoritative
      while present and rebuilt from the last committed snapshot when absent
    - Operations on one crowdsale are serialized by its asyncio.Lock; a ledger is
      restored only while that lock is held, from a freshly read row, and a
      restore never replaces a live handle
    - A committed ledger operation is persisted (snapshot + new audit rows) in
      one DB transaction; if that commit fails the handle is evicted so the next
      request rebuilds from the previous snapshot
    - A rejected ledger operation writes nothing (the ledger already rolled back)

Design Decisions:
    - _ledgers as module-level dict: single-process uvicorn, like any in-memory
      registry it is per-worker (ADR: restore-on-miss keeps workers correct after restart)
    - Vault deposit happens after invest commits: deposit of a positive amount cannot fail
"""

import asyncio
import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crowdsale.config import Settings, get_settings
from crowdsale.core.crowdsale_ledger import CrowdsaleLedger
from crowdsale.core.domain_types import Amount, ContributorId, Units
from crowdsale.core.errors import ResourceNotFoundError
from crowdsale.core.ledger_snapshot import (
    ledger_state_from_snapshot, ledger_state_to_snapshot,
)
from crowdsale.core.ledger_state import LedgerState
from crowdsale.infrastructure.escrow_vault import EscrowVault
from crowdsale.infrastructure.token_issuer import InMemoryTokenIssuer
from crowdsale.models.crowdsale import Crowdsale as CrowdsaleModel
from crowdsale.models.ledger_event import LedgerEventRecord
from crowdsale.schemas.crowdsale import CrowdsaleCreate
from crowdsale.services.event_recorder import EventRecorder

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class LedgerHandle:
    """A live ledger wired to its issuer, vault, and event recorder."""
    sale_id: UUID
    ledger: CrowdsaleLedger
    issuer: InMemoryTokenIssuer
    vault: EscrowVault
    recorder: EventRecorder


_ledgers: dict[UUID, LedgerHandle] = {}
# Entries vanish once no request holds or awaits the lock.
_locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(sale_id: UUID) -> asyncio.Lock:
    lock = _locks.get(sale_id)
    if lock is None:
        lock = _locks[sale_id] = asyncio.Lock()
    return lock


def live_ledger_count() -> int:
    return len(_ledgers)


def handle_to_snapshot(handle: LedgerHandle) -> dict:
    return {
        "ledger": ledger_state_to_snapshot(handle.ledger.state),
        "token": handle.issuer.to_snapshot(),
        "vault": handle.vault.to_snapshot(),
    }


def handle_from_snapshot(
    sale_id: UUID, data: dict, blocked_recipients: list[str],
) -> LedgerHandle:
    issuer = InMemoryTokenIssuer.from_snapshot(data.get("token", {}))
    vault = EscrowVault.from_snapshot(data.get("vault", {}), blocked_recipients)
    recorder = EventRecorder()
    ledger = CrowdsaleLedger.from_state(
        ledger_state_from_snapshot(data["ledger"]),
        issuer=issuer, payments=vault, sinks=[recorder], sale_id=str(sale_id),
    )
    return LedgerHandle(sale_id, ledger, issuer, vault, recorder)


class CrowdsaleService:
    """Runs ledger operations for one request against the shared registry."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    async def create(
        self, owner: ContributorId, body: CrowdsaleCreate,
    ) -> LedgerHandle:
        sale_id = uuid4()
        issuer = InMemoryTokenIssuer()
        vault = EscrowVault(self.settings.vault_blocked_recipients)
        recorder = EventRecorder()
        ledger = CrowdsaleLedger(
            owner, body.start_time, body.end_time,
            Amount(body.unit_price), Amount(body.funding_objective),
            issuer=issuer, payments=vault, sinks=[recorder], sale_id=str(sale_id),
        )
        handle = LedgerHandle(sale_id, ledger, issuer, vault, recorder)
        self.db.add(CrowdsaleModel(
            id=sale_id,
            owner=owner,
            unit_price=body.unit_price,
            funding_objective=body.funding_objective,
            start_time=body.start_time,
            end_time=body.end_time,
            status=ledger.status.value,
            snapshot=handle_to_snapshot(handle),
        ))
        await self.db.commit()
        _ledgers[sale_id] = handle
        logger.info(
            f"Crowdsale created by {owner}: objective {body.funding_objective}, "
            f"unit price {body.unit_price}",
            extra={"sale_id": str(sale_id)},
        )
        return handle

    async def get(self, sale_id: UUID) -> LedgerHandle:
        handle = _ledgers.get(sale_id)
        if handle is not None:
            return handle
        async with _lock_for(sale_id):
            _, handle = await self._load(sale_id)
            return handle

    async def invest(
        self, sale_id: UUID, contributor: ContributorId, amount: Amount,
    ) -> tuple[Units, LedgerState]:
        def operation(handle: LedgerHandle) -> tuple[Units, LedgerState]:
            units = handle.ledger.invest(contributor, amount)
            handle.vault.deposit(amount)
            return units, handle.ledger.state

        return await self._run(sale_id, operation)

    async def finalize(self, sale_id: UUID, caller: ContributorId) -> LedgerState:
        def operation(handle: LedgerHandle) -> LedgerState:
            handle.ledger.finalize(caller)
            return handle.ledger.state

        return await self._run(sale_id, operation)

    async def refund(
        self, sale_id: UUID, caller: ContributorId,
    ) -> tuple[Amount, LedgerState]:
        def operation(handle: LedgerHandle) -> tuple[Amount, LedgerState]:
            amount = handle.ledger.refund(caller)
            return amount, handle.ledger.state

        return await self._run(sale_id, operation)

    async def transfer_units(
        self,
        sale_id: UUID,
        sender: ContributorId,
        recipient: ContributorId,
        amount: Units,
    ) -> tuple[Units, Units]:
        """Move released units between holders. Returns both balances afterwards."""
        def operation(handle: LedgerHandle) -> tuple[Units, Units]:
            handle.issuer.transfer(sender, recipient, amount)
            return handle.issuer.balance_of(sender), handle.issuer.balance_of(recipient)

        return await self._run(sale_id, operation)

    async def list_events(
        self, sale_id: UUID, limit: int = 50, offset: int = 0,
    ) -> list[LedgerEventRecord]:
        await self._get_record(sale_id)
        result = await self.db.execute(
            select(LedgerEventRecord)
            .where(LedgerEventRecord.crowdsale_id == sale_id)
            .order_by(LedgerEventRecord.sequence)
            .limit(limit)
            .offset(offset),
        )
        return list(result.scalars().all())

    # ─── Helpers ─────────────────────────────────────────────────

    async def _run(
        self, sale_id: UUID, operation: Callable[[LedgerHandle], T],
    ) -> T:
        async with _lock_for(sale_id):
            record, handle = await self._load(sale_id)
            result = operation(handle)
            try:
                await self._persist(record, handle)
            except Exception as e:
                _ledgers.pop(sale_id, None)  # rebuild from last committed snapshot
                logger.error(
                    f"Failed to persist crowdsale {sale_id}: {e}",
                    extra={"sale_id": str(sale_id)}, exc_info=True,
                )
                raise
            return result

    async def _persist(self, record: CrowdsaleModel, handle: LedgerHandle) -> None:
        events = handle.recorder.drain()
        for offset, event in enumerate(events):
            self.db.add(LedgerEventRecord(
                crowdsale_id=record.id,
                sequence=record.event_count + offset,
                event_type=event.event_type.value,
                contributor=event.contributor,
                amount=event.amount,
                message=event.message,
                created_at=event.timestamp,
            ))
        state = handle.ledger.state
        record.event_count += len(events)
        record.status = state.status.value
        record.total_received = state.total_received
        record.total_refunded = state.total_refunded
        record.finalized_at = state.finalized_at
        record.snapshot = handle_to_snapshot(handle)
        await self.db.commit()

    async def _load(self, sale_id: UUID) -> tuple[CrowdsaleModel, LedgerHandle]:
        """Fresh row plus live handle. Caller holds the sale's lock."""
        record = await self._get_record(sale_id)
        return record, _ledgers.get(sale_id) or self._restore(record)

    async def _get_record(self, sale_id: UUID) -> CrowdsaleModel:
        # populate_existing: a row cached by this session may predate another commit
        record = await self.db.get(CrowdsaleModel, sale_id, populate_existing=True)
        if record is None:
            raise ResourceNotFoundError("Crowdsale", str(sale_id))
        return record

    def _restore(self, record: CrowdsaleModel) -> LedgerHandle:
        handle = handle_from_snapshot(
            record.id, record.snapshot, self.settings.vault_blocked_recipients,
        )
        live = _ledgers.setdefault(record.id, handle)
        if live is handle:
            logger.info(
                "Crowdsale restored from snapshot", extra={"sale_id": str(record.id)},
            )
        return live
