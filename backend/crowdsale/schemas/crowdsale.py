"""Crowdsale Schemas — Pydantic models for the crowdsale API.

Invariants:
    - Datetimes are timezone-aware (naive input is read as UTC)
    - Contributor identities are stripped, 1-128 chars
    - Amounts are integers; positivity is a ledger rule (INVALID_AMOUNT), not a schema rule

Design Decisions:
    - StrictInt for money: "12.5" or 12.5 never silently truncate to 12
    - Response models built from LedgerState, not ORM rows: the in-memory
      ledger is authoritative for a running process
"""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt, field_validator

from crowdsale.core.domain_types import LedgerEventType, SaleStatus
from crowdsale.core.ledger_state import LedgerState


def _as_utc(v: datetime) -> datetime:
    return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v


class CrowdsaleCreate(BaseModel):
    """Crowdsale creation — the caller becomes the owner."""
    start_time: datetime
    end_time: datetime
    unit_price: StrictInt
    funding_objective: StrictInt

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)


class InvestmentCreate(BaseModel):
    """Investment request — contributor defaults to the caller."""
    amount: StrictInt
    contributor: str | None = Field(None, min_length=1, max_length=128)

    @field_validator("contributor")
    @classmethod
    def strip_contributor(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("contributor cannot be empty or whitespace")
        return v


class CrowdsaleResponse(BaseModel):
    """Public ledger fields plus derived status."""
    id: UUID
    owner: str
    status: SaleStatus
    is_finalized: bool
    is_refunding_allowed: bool
    start_time: datetime
    end_time: datetime
    unit_price: int
    funding_objective: int
    total_received: int
    total_refunded: int
    outstanding_balance: int
    contributor_count: int

    @classmethod
    def from_state(cls, sale_id: UUID, state: LedgerState) -> "CrowdsaleResponse":
        return cls(
            id=sale_id,
            owner=state.owner,
            status=state.status,
            is_finalized=state.is_finalized,
            is_refunding_allowed=state.is_refunding_allowed,
            start_time=state.start_time,
            end_time=state.end_time,
            unit_price=state.unit_price,
            funding_objective=state.funding_objective,
            total_received=state.total_received,
            total_refunded=state.total_refunded,
            outstanding_balance=state.outstanding_balance,
            contributor_count=state.contributor_count,
        )


class InvestmentResponse(BaseModel):
    contributor: str
    amount: int
    units_minted: int
    total_received: int


class RefundResponse(BaseModel):
    contributor: str
    refunded: int
    total_refunded: int


class ContributionResponse(BaseModel):
    """A contributor's standing balance and issued units."""
    contributor: str
    contributed: int
    units: int
    units_transferable: bool


class LedgerEventResponse(BaseModel):
    sequence: int
    event_type: LedgerEventType
    contributor: str | None
    amount: int
    message: str
    created_at: datetime


class UnitTransferCreate(BaseModel):
    """Move released units from the caller to another holder."""
    recipient: str = Field(..., min_length=1, max_length=128)
    amount: StrictInt

    @field_validator("recipient")
    @classmethod
    def strip_recipient(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("recipient cannot be empty or whitespace")
        return v


class UnitTransferResponse(BaseModel):
    sender: str
    recipient: str
    amount: int
    sender_units: int
    recipient_units: int
