"""CLI entry point (Typer).

Every command builds an `RmaService` from the environment, runs one
operation and closes the per-organization clients.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console

from cli import doctor
from cli.ui_components import (
    build_matches_table,
    build_operations_table,
    build_organizations_table,
    build_summary_panel,
    build_validation_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.serial import normalize_serial_pair
from core.errors import RmaError, format_error_message
from core.logging import configure_logging
from core.services.rma_pipeline import RmaService

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Replace failed Meraki devices across organizations.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def _run(operation: Callable[[RmaService], Awaitable[T]]) -> T:
    settings = AppSettings()
    configure_logging(settings.log_level)

    async def runner() -> T:
        service = RmaService.from_settings(settings)
        try:
            return await operation(service)
        finally:
            await service.aclose()

    try:
        return asyncio.run(runner())
    except RmaError as exc:
        _console.print(f"[red]Error:[/red] {format_error_message(exc)}")
        raise typer.Exit(code=1) from None


def _print_json(payload: Any) -> None:
    _console.print_json(json.dumps(payload, default=str))


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind host (default MERAKI_SERVER_HOST)."),
    port: int | None = typer.Option(None, help="Bind port (default MERAKI_SERVER_PORT)."),
) -> None:
    """Run the HTTP API with uvicorn."""

    import uvicorn  # noqa: PLC0415

    from server.app import create_app  # noqa: PLC0415

    settings = AppSettings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_level=settings.log_level.lower(),
    )


@app.command()
def orgs(as_json: bool = typer.Option(False, "--json", help="Print raw JSON.")) -> None:
    """Show accessibility of every configured organization."""

    infos = _run(lambda s: s.directory.organizations_info())
    if as_json:
        _print_json([i.model_dump(mode="json", by_alias=True) for i in infos])
        return
    print_banner(_console)
    _console.print(build_organizations_table(infos))


@app.command()
def networks(as_json: bool = typer.Option(False, "--json", help="Print raw JSON.")) -> None:
    """List networks across all organizations."""

    found = _run(lambda s: s.directory.networks())
    if as_json:
        _print_json([n.model_dump(mode="json", by_alias=True) for n in found])
        return
    for network in found:
        _console.print(f"{network.organization_id}  {network.id}  {network.name}")


@app.command()
def search(serial: str = typer.Argument(..., help="Serial (XXXX-XXXX-XXXX).")) -> None:
    """Search a device in every network of every organization."""

    matches = _run(lambda s: s.search_device(serial))
    if not matches:
        _console.print(f"[yellow]Device {serial.upper()} not found in any organization.[/yellow]")
        raise typer.Exit(code=1)
    _console.print(build_matches_table(serial.upper(), matches))


@app.command()
def validate(
    failed_serial: str = typer.Argument(..., help="Serial of the failed device."),
    replacement_serial: str = typer.Argument(..., help="Serial of the replacement device."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """Validate a failed/replacement device pair."""

    result = _run(lambda s: s.validate_devices(failed_serial, replacement_serial))
    if as_json:
        _print_json(result.model_dump(mode="json", by_alias=True, exclude_none=True))
    else:
        _console.print(build_validation_panel(result))
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def replace(
    failed_serial: str = typer.Argument(..., help="Serial of the failed device."),
    replacement_serial: str = typer.Argument(..., help="Serial of the replacement device."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """Replace FAILED_SERIAL with REPLACEMENT_SERIAL (no rollback on failure)."""

    try:
        failed, replacement = normalize_serial_pair(failed_serial, replacement_serial)
    except RmaError as exc:
        raise typer.BadParameter(str(exc)) from None

    if not yes:
        typer.confirm(
            f"Replace {failed} with {replacement}? The failed device will be removed from its network",
            abort=True,
        )

    result = _run(lambda s: s.replace_device(failed, replacement))
    if as_json:
        _print_json(result.model_dump(mode="json", by_alias=True, exclude_none=True))
    else:
        if result.operations:
            _console.print(build_operations_table(result))
        _console.print(build_summary_panel(result))
    if not result.success:
        raise typer.Exit(code=1)


def run() -> None:
    app()
