"""
Render provisioning CLI.

Commands:
- create-api: create a Render web service from a GitHub repository
- create-db: create a Render managed PostgreSQL instance

--key and --owner fall back to RENDER_API_KEY / RENDER_OWNER_ID (via Settings).
Flag values are handed to the provisioning contracts unvalidated; the contract's
input schema is the only validation step.
"""
import asyncio

import typer

from safecall.config import Settings, get_settings
from safecall.core.call_result import CallResult
from safecall.core.contract import ExecutionContract
from safecall.core.errors import INVALID_INPUT_MESSAGE
from safecall.infrastructure.observability import setup_logging
from safecall.infrastructure.render_client import RenderClient
from safecall.services.render_provisioning import (
    build_create_postgres_contract,
    build_create_service_contract,
)

app = typer.Typer(
    help="Provision Render resources through validated contracts",
    no_args_is_help=True,
)

# Input field -> flag that sets it, for error reporting
SERVICE_FLAGS = {
    "repo_name": "--repo",
    "service_name": "--service",
    "api_key": "--key (or RENDER_API_KEY)",
    "owner_id": "--owner (or RENDER_OWNER_ID)",
}
POSTGRES_FLAGS = {
    "db_name": "--name",
    "api_key": "--key (or RENDER_API_KEY)",
    "owner_id": "--owner (or RENDER_OWNER_ID)",
    "region": "--region",
    "plan": "--plan",
    "version": "--version",
}


def build_client(settings: Settings) -> RenderClient:
    return RenderClient(
        base_url=settings.render_api_base_url,
        timeout_seconds=settings.render_timeout_seconds,
    )


async def _execute(contract_builder, raw_input: dict, settings: Settings) -> tuple[CallResult, ExecutionContract]:
    async with build_client(settings) as client:
        contract = contract_builder(client, settings.contract_timeout_seconds)
        return await contract.execute(raw_input), contract


def _drop_unset(values: dict) -> dict:
    return {k: v for k, v in values.items() if v is not None}


def _report_failure(
    what: str, result: CallResult, contract: ExecutionContract,
    raw_input: dict, flags: dict[str, str],
) -> None:
    typer.echo(f"Error creating {what}: {result.error.message}", err=True)
    if result.error.message == INVALID_INPUT_MESSAGE:
        parsed = contract.input_schema.parse(raw_input)
        fields = sorted({
            str(issue["loc"][0]) for issue in parsed.issues if issue.get("loc")
        })
        for field in fields:
            typer.echo(f"  missing or invalid: {flags.get(field, field)}", err=True)
    raise typer.Exit(code=1)


@app.command("create-api")
def create_api(
    repo: str | None = typer.Option(None, "--repo", help="GitHub repository (owner/name)"),
    service: str | None = typer.Option(None, "--service", help="Service name"),
    key: str | None = typer.Option(None, "--key", help="Render API key"),
    owner: str | None = typer.Option(None, "--owner", help="Owner ID (e.g. tea-...)"),
) -> None:
    """
    Create a Render web service that builds with bun from a GitHub repo.

    Examples:
        safecall-render create-api --repo me/api --service my-api --owner tea-123 --key rnd_abc
    """
    settings = get_settings()
    setup_logging(settings.log_level, "text")
    raw_input = _drop_unset({
        "repo_name": repo,
        "service_name": service,
        "api_key": key or settings.render_api_key,
        "owner_id": owner or settings.render_owner_id,
    })

    result, contract = asyncio.run(
        _execute(build_create_service_contract, raw_input, settings),
    )
    if not result.ok:
        _report_failure("web service", result, contract, raw_input, SERVICE_FLAGS)

    typer.echo()
    typer.echo("Web service created successfully!")
    typer.echo(f"- ID: {result.value.id}")
    typer.echo(f"- Name: {result.value.name}")
    typer.echo(f"- URL: {result.value.url}")


@app.command("create-db")
def create_db(
    name: str | None = typer.Option(None, "--name", help="Database name"),
    key: str | None = typer.Option(None, "--key", help="Render API key"),
    owner: str | None = typer.Option(None, "--owner", help="Owner ID (e.g. tea-...)"),
    region: str | None = typer.Option(None, "--region", help="oregon, ohio, singapore, frankfurt [default: oregon]"),
    plan: str | None = typer.Option(None, "--plan", help="free, starter, standard, pro, pro_plus [default: free]"),
    version: str | None = typer.Option(None, "--version", help="PostgreSQL version [default: 16]"),
) -> None:
    """
    Create a Render managed PostgreSQL database.

    Examples:
        safecall-render create-db --name mydb --owner tea-123 --key rnd_abc
        safecall-render create-db --name mydb --owner tea-123 --region ohio --plan standard
    """
    settings = get_settings()
    setup_logging(settings.log_level, "text")
    raw_input = _drop_unset({
        "db_name": name,
        "api_key": key or settings.render_api_key,
        "owner_id": owner or settings.render_owner_id,
        "region": region,
        "plan": plan,
        "version": version,
    })

    result, contract = asyncio.run(
        _execute(build_create_postgres_contract, raw_input, settings),
    )
    if not result.ok:
        _report_failure("PostgreSQL database", result, contract, raw_input, POSTGRES_FLAGS)

    info = result.value.connection_info
    typer.echo()
    typer.echo("PostgreSQL database created successfully!")
    typer.echo(f"- ID: {result.value.id}")
    typer.echo(f"- Name: {result.value.name}")
    typer.echo()
    typer.echo("Connection information:")
    typer.echo(f"- External connection string: {info.external_connection_string}")
    typer.echo(f"- Internal connection string: {info.internal_connection_string}")
    typer.echo(f"- psql command: {info.psql_command}")
    typer.echo()
    typer.echo("Store these connection details securely.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
