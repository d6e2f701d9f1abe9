"""Core Layer: the validated execution contract. Pure, no IO, no DB, no settings.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, cli/ or db/
    - The only async code is ExecutionContract.execute, which awaits the handler

Design Decisions:
    - Functional core separated from imperative shell: collaborators build contracts,
      the core never reaches for them
"""
