"""Pydantic Schemas - request/response and event wire contracts.

Invariants:
    - Schemas validate at system boundary (user input, API responses, event frames)
    - Wire form is camelCase; Python attributes are snake_case

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
