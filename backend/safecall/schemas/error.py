"""Error Schema: the conventional single-field error shape.

Invariants:
    - ErrorMessage has exactly one field, message (str)
    - Satisfiable by the default message_error_factory
"""

from pydantic import BaseModel, ConfigDict


class ErrorMessage(BaseModel):
    """Error payload returned by every contract: {"message": str}."""
    model_config = ConfigDict(frozen=True)

    message: str
