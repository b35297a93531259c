"""Services Layer — orchestration between HTTP routes, the ledger core, and the database.

Invariants:
    - Services never contain ledger rules; they sequence core calls and persistence
    - One operation per crowdsale at a time (per-crowdsale asyncio.Lock)

Design Decisions:
    - Imperative shell around the synchronous core (ADR: impureim sandwich)
"""
