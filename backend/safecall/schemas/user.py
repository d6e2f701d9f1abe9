"""User Schemas: inputs and responses for the /users contracts.

Invariants:
    - UserCreate.name: at least 1 char
    - ListUsersQuery.limit: 1-100 (default 10), offset >= 0 (default 0)
"""

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """POST /users body."""
    name: str = Field(min_length=1)


class UserResponse(BaseModel):
    """A persisted user row."""
    id: int
    name: str


class ListUsersQuery(BaseModel):
    """GET /users pagination."""
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0)


class Pagination(BaseModel):
    limit: int
    offset: int


class UserList(BaseModel):
    users: list[UserResponse]
    pagination: Pagination
