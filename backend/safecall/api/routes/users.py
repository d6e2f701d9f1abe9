"""Users Routes: HTTP shell around the create/list user contracts.

Invariants:
    - POST body that is not JSON -> 400 {"message": "Invalid JSON"}, contract never invoked
    - Contract error -> 400 with the error payload; POST success -> 201, GET success -> 200
    - Routes contain no validation or SQL: the contracts own both

Design Decisions:
    - Body read with request.json() instead of a typed body parameter: the contract,
      not FastAPI, validates the raw input (one validation path for HTTP and CLI)
    - Contracts built per request by dependencies around the request's DB session
"""

import json
import logging

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from safecall.api.contract_responses import contract_response
from safecall.config import Settings, get_settings
from safecall.core.contract import ExecutionContract
from safecall.infrastructure.database import get_db
from safecall.services.users import (
    build_create_user_contract, build_list_users_contract,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


def get_create_user_contract(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ExecutionContract:
    return build_create_user_contract(db, settings.contract_timeout_seconds)


def get_list_users_contract(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ExecutionContract:
    return build_list_users_contract(db, settings.contract_timeout_seconds)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    contract: ExecutionContract = Depends(get_create_user_contract),
):
    """Create a user from a {"name": str} body."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.info("Rejected non-JSON body", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid JSON"},
        )
    result = await contract.execute(body)
    return contract_response(result, status.HTTP_201_CREATED)


@router.get("")
async def list_users(
    limit: int = Query(10),
    offset: int = Query(0),
    contract: ExecutionContract = Depends(get_list_users_contract),
):
    """List users, ordered by id. Bounds are enforced by the contract's input schema."""
    result = await contract.execute({"limit": limit, "offset": offset})
    return contract_response(result, status.HTTP_200_OK)
