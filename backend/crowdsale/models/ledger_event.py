"""LedgerEvent ORM — append-only audit log of committed ledger events.

Invariants:
    - (crowdsale_id, sequence) is unique; sequence starts at 0 per crowdsale
    - Rows are written only for events the ledger committed (never for rollbacks)

Design Decisions:
    - Logging table, not enforcement: no ledger rule reads it back
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from crowdsale.db.base import Base


class LedgerEventRecord(Base):
    """Persisted audit entry for one ledger event."""
    __tablename__ = "ledger_events"
    __table_args__ = (
        UniqueConstraint("crowdsale_id", "sequence", name="uq_ledger_event_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    crowdsale_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crowdsales.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    contributor: Mapped[str | None] = mapped_column(String(128), nullable=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    crowdsale: Mapped["Crowdsale"] = relationship(
        "Crowdsale", back_populates="events",
    )
