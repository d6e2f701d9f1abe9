"""Contract Responses: maps a CallResult onto an HTTP response.

Invariants:
    - error populated -> 400 with the error payload as the JSON body
    - value populated -> the route's success status with the value as the JSON body
    - Status is decided by the error/value discriminant alone
"""

from fastapi import status
from fastapi.responses import JSONResponse

from safecall.core.call_result import CallResult


def contract_response(
    result: CallResult, success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    body = result.to_dict()
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content=body["error"],
        )
    return JSONResponse(status_code=success_status, content=body["value"])
