"""Services Layer: execution contracts for users and Render provisioning.

Invariants:
    - Every service operation is exposed as a build_*_contract() factory
    - Services never raise per call: failures come back in CallResult.error

Design Decisions:
    - Contracts are built per request around injected dependencies
      (AsyncSession, RenderClient), never held as module globals
"""
