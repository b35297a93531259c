"""SQLAlchemy Declarative Base — metadata shared by the crowdsale and audit tables.

Invariants:
    - Every ORM model inherits from Base; create_schema builds Base.metadata
    - Constraint names are deterministic (naming convention), so SQLite and
      PostgreSQL schemas name the same constraints the same way
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
