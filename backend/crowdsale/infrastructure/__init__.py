"""Infrastructure Layer — collaborator implementations and cross-cutting concerns.

Invariants:
    - Infrastructure never imports ledger logic, only core errors and domain types
    - Token issuer and escrow vault satisfy core/boundary_protocols structurally

Design Decisions:
    - In-process collaborators with snapshot support: one process owns each ledger
      and can rebuild it from the database after a restart
"""
