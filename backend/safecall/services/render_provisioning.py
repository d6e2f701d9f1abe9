"""Render Provisioning Contracts: create web services and PostgreSQL instances on Render.

Invariants:
    - Every Render failure mode becomes an ErrorMessage value, never an exception:
      transport error, non-2xx status, non-JSON body, unexpected payload shape
    - Non-2xx message precedence: body "message", then body "error", then "HTTP <code>: <reason>"
    - Successful payloads may be wrapped ({"service": ...} / {"postgres": ...}) or bare
      (top-level "id"); anything else is "Unexpected response structure from Render API"
    - Service URL falls back to https://<service_name>.onrender.com

Design Decisions:
    - Parsing helpers are pure functions, handlers only sequence them
      (ADR: functional core, imperative shell)
    - Render payload malformations are reported with their own message, distinct from
      the contract's "invalid response object" (external fault vs handler defect)
"""

import json
import logging

from pydantic import ValidationError

from safecall.core.call_result import CallResult
from safecall.core.contract import ExecutionContract, HandlerContext, build_contract
from safecall.core.errors import RenderAPIError
from safecall.infrastructure.render_client import RenderClient, RenderResponse
from safecall.schemas.error import ErrorMessage
from safecall.schemas.render import (
    RenderConnectionInfo,
    RenderPostgres,
    RenderPostgresCreate,
    RenderService,
    RenderServiceCreate,
)

logger = logging.getLogger(__name__)

NOT_JSON_MESSAGE = "Response is not valid JSON"
UNEXPECTED_STRUCTURE_MESSAGE = "Unexpected response structure from Render API"
INVALID_STRUCTURE_MESSAGE = "Invalid response structure from Render API"

# Web service defaults: bun runtime on a paid instance (the API has no free tier for services)
SERVICE_BRANCH = "master"
SERVICE_BUILD_COMMAND = "bun install"
SERVICE_START_COMMAND = "bun run src/index.ts"
SERVICE_INSTANCE_TYPE = "starter_v2"


# ─── Pure helpers ───────────────────────────────────────────────

def build_service_payload(data: RenderServiceCreate) -> dict:
    return {
        "type": "web_service",
        "name": data.service_name,
        "ownerId": data.owner_id,
        "repo": f"https://github.com/{data.repo_name}",
        "branch": SERVICE_BRANCH,
        "autoDeploy": "yes",
        "serviceDetails": {
            "runtime": "node",
            "buildCommand": SERVICE_BUILD_COMMAND,
            "startCommand": SERVICE_START_COMMAND,
            "instanceType": SERVICE_INSTANCE_TYPE,
            "env": "node",
            "envSpecificDetails": {
                "buildCommand": SERVICE_BUILD_COMMAND,
                "startCommand": SERVICE_START_COMMAND,
            },
        },
    }


def build_postgres_payload(data: RenderPostgresCreate) -> dict:
    return {
        "name": data.db_name,
        "ownerId": data.owner_id,
        "region": data.region,
        "plan": data.plan,
        "version": data.version,
    }


def extract_error_message(response: RenderResponse) -> str:
    """Message for a non-2xx response."""
    fallback = f"HTTP {response.status_code}: {response.reason}"
    try:
        body = json.loads(response.text)
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    message = body.get("message") or body.get("error")
    return str(message) if message else fallback


def decode_body(response: RenderResponse) -> object:
    """json.loads the body. Raises ValueError when it is not JSON."""
    return json.loads(response.text)


def unwrap_resource(body: object, envelope_key: str) -> dict | None:
    """Return the resource object from {envelope_key: {...}} or a bare {"id": ...}."""
    if not isinstance(body, dict):
        return None
    wrapped = body.get(envelope_key)
    if isinstance(wrapped, dict):
        return wrapped
    if body.get("id"):
        return body
    return None


def service_url(service: dict, service_name: str) -> str:
    details = service.get("serviceDetails")
    if isinstance(details, dict) and details.get("url"):
        return details["url"]
    if service.get("url"):
        return service["url"]
    return f"https://{service_name}.onrender.com"


def read_resource(response: RenderResponse, envelope_key: str) -> tuple[dict | None, str | None]:
    """Shared response handling. Returns (resource, None) or (None, error message)."""
    if not response.ok:
        return None, extract_error_message(response)
    try:
        body = decode_body(response)
    except ValueError:
        return None, NOT_JSON_MESSAGE
    resource = unwrap_resource(body, envelope_key)
    if resource is None:
        return None, UNEXPECTED_STRUCTURE_MESSAGE
    return resource, None


# ─── Contracts ──────────────────────────────────────────────────

def build_create_service_contract(
    client: RenderClient, timeout_seconds: float | None = None,
) -> ExecutionContract[RenderServiceCreate, RenderService, ErrorMessage]:
    """POST /services for a GitHub repo, normalized to {id, name, url}."""

    async def create_service(
        ctx: HandlerContext[RenderServiceCreate, ErrorMessage],
    ) -> CallResult[RenderService, ErrorMessage]:
        data = ctx.input
        logger.info(
            f"Creating web service '{data.service_name}' from {data.repo_name} "
            f"for owner {data.owner_id}",
        )
        try:
            response = await client.post_json(
                "/services", data.api_key, build_service_payload(data),
            )
        except RenderAPIError as e:
            return CallResult.failure(ctx.error(e.message))

        service, message = read_resource(response, "service")
        if message:
            return CallResult.failure(ctx.error(message))
        try:
            created = RenderService(
                id=service.get("id"),
                name=service.get("name"),
                url=service_url(service, data.service_name),
            )
        except ValidationError as e:
            logger.warning(f"Render service payload rejected: {e.errors(include_url=False)}")
            return CallResult.failure(ctx.error(INVALID_STRUCTURE_MESSAGE))
        return CallResult.success(created)

    return build_contract(
        RenderServiceCreate, RenderService, ErrorMessage, create_service,
        name="render_create_service", timeout_seconds=timeout_seconds,
    )


def build_create_postgres_contract(
    client: RenderClient, timeout_seconds: float | None = None,
) -> ExecutionContract[RenderPostgresCreate, RenderPostgres, ErrorMessage]:
    """POST /postgres, normalized to {id, name, connection_info}."""

    async def create_postgres(
        ctx: HandlerContext[RenderPostgresCreate, ErrorMessage],
    ) -> CallResult[RenderPostgres, ErrorMessage]:
        data = ctx.input
        logger.info(
            f"Creating PostgreSQL '{data.db_name}' (region={data.region}, "
            f"plan={data.plan}, version={data.version}) for owner {data.owner_id}",
        )
        try:
            response = await client.post_json(
                "/postgres", data.api_key, build_postgres_payload(data),
            )
        except RenderAPIError as e:
            return CallResult.failure(ctx.error(e.message))

        postgres, message = read_resource(response, "postgres")
        if message:
            return CallResult.failure(ctx.error(message))
        try:
            created = RenderPostgres(
                id=postgres.get("id"),
                name=postgres.get("name"),
                connection_info=RenderConnectionInfo(
                    external_connection_string=postgres.get("externalConnectionString") or "",
                    internal_connection_string=postgres.get("internalConnectionString") or "",
                    psql_command=postgres.get("psqlCommand") or "",
                ),
            )
        except ValidationError as e:
            logger.warning(f"Render postgres payload rejected: {e.errors(include_url=False)}")
            return CallResult.failure(ctx.error(INVALID_STRUCTURE_MESSAGE))
        return CallResult.success(created)

    return build_contract(
        RenderPostgresCreate, RenderPostgres, ErrorMessage, create_postgres,
        name="render_create_postgres", timeout_seconds=timeout_seconds,
    )
