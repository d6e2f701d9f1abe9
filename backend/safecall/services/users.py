"""User Contracts: create and list users through validated execution contracts.

Invariants:
    - Handlers receive the AsyncSession they use as an argument (no module-level client)
    - SQL failures are translated into error values by the handler, never raised
    - A failed insert is rolled back before the error is returned

Design Decisions:
    - Contracts built per request around the request's session: construction is cheap
      and keeps each contract bound to exactly one unit of work
    - Error messages do not carry driver text; the details go to the log
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safecall.core.call_result import CallResult
from safecall.core.contract import ExecutionContract, HandlerContext, build_contract
from safecall.models.user import User
from safecall.schemas.error import ErrorMessage
from safecall.schemas.user import (
    ListUsersQuery, Pagination, UserCreate, UserList, UserResponse,
)

logger = logging.getLogger(__name__)


def build_create_user_contract(
    db: AsyncSession, timeout_seconds: float | None = None,
) -> ExecutionContract[UserCreate, UserResponse, ErrorMessage]:
    """INSERT INTO users (name) ... RETURNING *, as a contract."""

    async def create_user(
        ctx: HandlerContext[UserCreate, ErrorMessage],
    ) -> CallResult[UserResponse, ErrorMessage]:
        user = User(name=ctx.input.name)
        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to insert user: {e}", extra={"operation": "insert"})
            return CallResult.failure(ctx.error("Failed to create user"))
        return CallResult.success(UserResponse(id=user.id, name=user.name))

    return build_contract(
        UserCreate, UserResponse, ErrorMessage, create_user,
        name="create_user", timeout_seconds=timeout_seconds,
    )


def build_list_users_contract(
    db: AsyncSession, timeout_seconds: float | None = None,
) -> ExecutionContract[ListUsersQuery, UserList, ErrorMessage]:
    """Paginated SELECT over users, ordered by id."""

    async def list_users(
        ctx: HandlerContext[ListUsersQuery, ErrorMessage],
    ) -> CallResult[UserList, ErrorMessage]:
        query = (
            select(User).order_by(User.id)
            .limit(ctx.input.limit).offset(ctx.input.offset)
        )
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list users: {e}", extra={"operation": "select"})
            return CallResult.failure(ctx.error("Failed to list users"))
        return CallResult.success(UserList(
            users=[UserResponse(id=u.id, name=u.name) for u in result.scalars().all()],
            pagination=Pagination(limit=ctx.input.limit, offset=ctx.input.offset),
        ))

    return build_contract(
        ListUsersQuery, UserList, ErrorMessage, list_users,
        name="list_users", timeout_seconds=timeout_seconds,
    )
