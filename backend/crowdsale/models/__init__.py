"""ORM Models — SQLAlchemy declarative models for persisted crowdsale data.

Invariants:
    - All models inherit from Base (db/base.py)
    - Crowdsale is the aggregate root; ledger events scoped by crowdsale_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from crowdsale.models.crowdsale import Crowdsale  # noqa: F401
from crowdsale.models.ledger_event import LedgerEventRecord  # noqa: F401
