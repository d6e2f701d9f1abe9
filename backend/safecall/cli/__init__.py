"""CLI Layer: typer commands that feed flag values into execution contracts.

Invariants:
    - Commands exit 0 on a value, 1 on an error; messages for errors go to stderr
"""
