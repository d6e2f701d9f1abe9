"""Pydantic Schemas: input, response and error shapes bound into contracts.

Invariants:
    - Schemas validate at system boundary (HTTP bodies, CLI flags, third-party responses)
    - ErrorMessage is the error shape of every contract in this package

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence (ADR: DDD boundary)
"""
