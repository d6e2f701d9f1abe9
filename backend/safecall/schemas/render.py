"""Render Schemas: inputs and normalized responses for the Render provisioning contracts.

Invariants:
    - Every identifier and secret is a non-empty string
    - RenderPostgresCreate defaults: region oregon, plan free, PostgreSQL 16
    - RenderService.url is an http(s) URL

Design Decisions:
    - Responses are normalized shapes, not the raw Render payloads: handlers unwrap
      {"service": ...} / {"postgres": ...} envelopes before validation
"""

from pydantic import BaseModel, Field


class RenderServiceCreate(BaseModel):
    """Create a web service from a GitHub repository."""
    repo_name: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    service_name: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)


class RenderService(BaseModel):
    id: str
    name: str
    url: str = Field(pattern=r"^https?://\S+$")


class RenderPostgresCreate(BaseModel):
    """Create a managed PostgreSQL instance."""
    db_name: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    owner_id: str = Field(min_length=1)
    region: str = "oregon"  # oregon, ohio, singapore, frankfurt
    plan: str = "free"  # free, starter, standard, pro, pro_plus
    version: str = "16"


class RenderConnectionInfo(BaseModel):
    external_connection_string: str
    internal_connection_string: str
    psql_command: str


class RenderPostgres(BaseModel):
    id: str
    name: str
    connection_info: RenderConnectionInfo
