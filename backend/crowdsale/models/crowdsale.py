"""Crowdsale ORM — persists one ledger and its collaborators' state.

Invariants:
    - id is UUID primary key
    - snapshot holds {"ledger", "token", "vault"}, enough to rebuild the ledger
    - status/totals are denormalized copies of the snapshot for listing queries
    - event_count is the next ledger_events.sequence to assign

Design Decisions:
    - JSON column for snapshot: the ledger is rebuilt whole, never queried by field
    - cascade delete for ledger events happens in the database (ondelete=CASCADE);
      the relationship is never loaded (lazy="raise"), audit rows are paged by query
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from crowdsale.db.base import Base


class Crowdsale(Base):
    """Crowdsale aggregate root — owns the audit event log."""
    __tablename__ = "crowdsales"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    funding_objective: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="open",
    )
    total_received: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    total_refunded: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    event_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    finalized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    events: Mapped[list["LedgerEventRecord"]] = relationship(
        "LedgerEventRecord", back_populates="crowdsale",
        cascade="all, delete-orphan", passive_deletes=True, lazy="raise",
    )
