"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Amount is always in the smallest funding denomination (integer, never float)
    - Units are whole issued token units (integer division of Amount by unit price)
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: API + snapshot are JSON)
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

CrowdsaleId = NewType("CrowdsaleId", UUID)
ContributorId = NewType("ContributorId", str)


# ─── Value Types ─────────────────────────────────────────────────

Amount = NewType("Amount", int)   # smallest funding denomination
Units = NewType("Units", int)     # issued token units


# ─── Enums ───────────────────────────────────────────────────────

class SaleStatus(str, Enum):
    """Ledger lifecycle states — both finalized states are terminal."""
    OPEN = "open"
    FINALIZED_RELEASED = "finalized_released"
    FINALIZED_REFUNDING = "finalized_refunding"


class LedgerEventType(str, Enum):
    """Outbound audit events emitted by the ledger."""
    INVESTMENT_RECORDED = "investment_recorded"
    OBJECTIVE_MET = "objective_met"
    OBJECTIVE_NOT_MET = "objective_not_met"
    REFUND_ISSUED = "refund_issued"


class LedgerOperation(str, Enum):
    """Public ledger operations — used for logging and error context."""
    CONSTRUCT = "construct"
    INVEST = "invest"
    FINALIZE = "finalize"
    REFUND = "refund"
