"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from core.config import AppSettings, write_user_env_vars
from core.errors import ConfigurationError
from core.services.registry import parse_organization_mapping
from core.services.rma_pipeline import RmaService

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_organizations(settings: AppSettings) -> list[tuple[str, bool, str]]:
    service = RmaService.from_settings(settings)
    try:
        infos = await service.directory.organizations_info()
    finally:
        await service.aclose()
    rows: list[tuple[str, bool, str]] = []
    for info in infos:
        if info.accessible:
            rows.append((info.id, True, f"{info.name} - {info.network_count} networks - {info.api_key_masked}"))
        else:
            rows.append((info.id, False, f"{info.error} - {info.api_key_masked}"))
    return rows


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="Meraki RMA Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Base URL", "OK", settings.base_url)
    table.add_row(
        "Operations log",
        "ON" if settings.log_to_file else "OFF",
        str(settings.operations_log_path) if settings.log_to_file else "MERAKI_LOG_TO_FILE=false",
    )

    try:
        credentials = parse_organization_mapping(settings.orgs)
    except ConfigurationError as exc:
        table.add_row("MERAKI_ORGS", "FAIL", str(exc))
        _console.print(table)
        raise typer.Exit(code=1)
    table.add_row("MERAKI_ORGS", "OK", f"{len(credentials)} organizations")

    rows = asyncio.run(_check_organizations(settings))
    for org_id, ok, detail in rows:
        table.add_row(f"Organization {org_id}", "OK" if ok else "FAIL", detail)

    _console.print(table)

    if not any(ok for _, ok, _ in rows):
        _console.print("\n[red]No organizations are accessible![/red] Check API keys and permissions.")
        raise typer.Exit(code=1)


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    base_url = typer.prompt("Dashboard API base URL", default=AppSettings().base_url, show_default=True).strip()
    mapping = typer.prompt("Organizations (ORG_ID:API_KEY,ORG_ID:API_KEY)", hide_input=True).strip()

    try:
        parse_organization_mapping(mapping)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from None

    env_path = write_user_env_vars({"MERAKI_BASE_URL": base_url, "MERAKI_ORGS": mapping})
    _console.print(f"[green]Saved configuration to:[/green] {env_path}")
