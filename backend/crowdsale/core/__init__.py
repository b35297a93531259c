"""Core Layer — ledger state machine and accounting rules, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Collaborators (token issuer, payment gateway, event sinks) reached only
      through boundary_protocols

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
