"""Crowdsale Routes — create, query, invest, finalize, refund, and unit transfers over HTTP.

Invariants:
    - Caller identity comes from the X-Caller-Id header and is passed to the
      ledger explicitly (owner check happens in core, not here)
    - Ledger rejections surface as their own error codes via the global handler

Design Decisions:
    - One POST per ledger operation: each request is one atomic ledger call
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crowdsale.config import get_settings
from crowdsale.core.domain_types import Amount, ContributorId, Units
from crowdsale.infrastructure.database import get_db
from crowdsale.schemas.crowdsale import (
    ContributionResponse,
    CrowdsaleCreate,
    CrowdsaleResponse,
    InvestmentCreate,
    InvestmentResponse,
    LedgerEventResponse,
    RefundResponse,
    UnitTransferCreate,
    UnitTransferResponse,
)
from crowdsale.services.crowdsale_service import CrowdsaleService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/crowdsales", tags=["crowdsales"])
_settings = get_settings()


def get_service(db: AsyncSession = Depends(get_db)) -> CrowdsaleService:
    return CrowdsaleService(db)


def get_caller(
    x_caller_id: str = Header(..., min_length=1, max_length=128),
) -> ContributorId:
    return ContributorId(x_caller_id.strip())


@router.post(
    "", response_model=CrowdsaleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_crowdsale(
    body: CrowdsaleCreate,
    caller: ContributorId = Depends(get_caller),
    service: CrowdsaleService = Depends(get_service),
):
    """Create a crowdsale owned by the caller."""
    handle = await service.create(caller, body)
    return CrowdsaleResponse.from_state(handle.sale_id, handle.ledger.state)


@router.get("/{sale_id}", response_model=CrowdsaleResponse)
async def get_crowdsale(
    sale_id: UUID, service: CrowdsaleService = Depends(get_service),
):
    """Public ledger fields and status."""
    handle = await service.get(sale_id)
    return CrowdsaleResponse.from_state(sale_id, handle.ledger.state)


@router.post(
    "/{sale_id}/investments", response_model=InvestmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invest(
    sale_id: UUID,
    body: InvestmentCreate,
    caller: ContributorId = Depends(get_caller),
    service: CrowdsaleService = Depends(get_service),
):
    """Record a contribution (contributor defaults to the caller)."""
    contributor = ContributorId(body.contributor or caller)
    units, state = await service.invest(sale_id, contributor, Amount(body.amount))
    return InvestmentResponse(
        contributor=contributor,
        amount=body.amount,
        units_minted=units,
        total_received=state.total_received,
    )


@router.post("/{sale_id}/finalize", response_model=CrowdsaleResponse)
async def finalize(
    sale_id: UUID,
    caller: ContributorId = Depends(get_caller),
    service: CrowdsaleService = Depends(get_service),
):
    """Owner-only: release issued units or open refunds."""
    state = await service.finalize(sale_id, caller)
    return CrowdsaleResponse.from_state(sale_id, state)


@router.post("/{sale_id}/refund", response_model=RefundResponse)
async def refund(
    sale_id: UUID,
    caller: ContributorId = Depends(get_caller),
    service: CrowdsaleService = Depends(get_service),
):
    """Refund the caller's whole contribution."""
    amount, state = await service.refund(sale_id, caller)
    return RefundResponse(
        contributor=caller, refunded=amount, total_refunded=state.total_refunded,
    )


@router.post("/{sale_id}/tokens/transfers", response_model=UnitTransferResponse)
async def transfer_units(
    sale_id: UUID,
    body: UnitTransferCreate,
    caller: ContributorId = Depends(get_caller),
    service: CrowdsaleService = Depends(get_service),
):
    """Move the caller's issued units; allowed only after release."""
    recipient = ContributorId(body.recipient)
    sender_units, recipient_units = await service.transfer_units(
        sale_id, caller, recipient, Units(body.amount),
    )
    return UnitTransferResponse(
        sender=caller,
        recipient=recipient,
        amount=body.amount,
        sender_units=sender_units,
        recipient_units=recipient_units,
    )


@router.get(
    "/{sale_id}/contributions/{contributor}",
    response_model=ContributionResponse,
)
async def get_contribution(
    sale_id: UUID,
    contributor: str,
    service: CrowdsaleService = Depends(get_service),
):
    """Contributor balance and units issued to them."""
    handle = await service.get(sale_id)
    return ContributionResponse(
        contributor=contributor,
        contributed=handle.ledger.contribution_of(ContributorId(contributor)),
        units=handle.issuer.balance_of(ContributorId(contributor)),
        units_transferable=handle.issuer.released,
    )


@router.get("/{sale_id}/events", response_model=list[LedgerEventResponse])
async def list_events(
    sale_id: UUID,
    limit: int = Query(
        _settings.events_page_size, ge=1, le=_settings.events_page_max,
    ),
    offset: int = Query(0, ge=0),
    service: CrowdsaleService = Depends(get_service),
):
    """Audit log of committed ledger events, oldest first."""
    records = await service.list_events(sale_id, limit=limit, offset=offset)
    return [
        LedgerEventResponse(
            sequence=r.sequence,
            event_type=r.event_type,
            contributor=r.contributor,
            amount=r.amount,
            message=r.message,
            created_at=r.created_at,
        )
        for r in records
    ]
