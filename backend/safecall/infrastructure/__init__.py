"""Infrastructure Layer: database sessions, Render HTTP client, logging.

Invariants:
    - Infrastructure never imports from services/
    - Transport failures are mapped to SafeCallError subclasses at this layer
"""
