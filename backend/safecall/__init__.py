"""SafeCall: schema-checked, exception-safe execution contracts for async operations.

Invariants:
    - Package root holds metadata only (no import side-effects)

Design Decisions:
    - Explicit imports from submodules, no star exports
"""

__version__ = "1.0.0"
