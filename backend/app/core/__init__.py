"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - The reconciler is the only code that mutates client posts state

Design Decisions:
    - Functional core separated from imperative shell
"""
