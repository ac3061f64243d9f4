"""Componentes de UI para CLI (Rich).

- Separa la lógica de comandos de los detalles visuales.
- Tablas/paneles reutilizables en varios comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import (
    DeviceMatch,
    OrganizationInfo,
    ReplacementResult,
    StepStatus,
    ValidationResult,
)

_STATUS_STYLES: dict[StepStatus, str] = {
    StepStatus.PENDING: "dim",
    StepStatus.IN_PROGRESS: "yellow",
    StepStatus.COMPLETED: "green",
    StepStatus.FAILED: "bold red",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (se omite en modo JSON)."""

    title = Text("MERAKI RMA", style="bold cyan")
    subtitle = Text("Localización multi-organización • Reemplazo de dispositivos", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_organizations_table(infos: list[OrganizationInfo]) -> Table:
    table = Table(title="Organizations")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Accessible", style="green")
    table.add_column("Networks", justify="right")
    table.add_column("API Key", style="dim")
    table.add_column("Error", style="red")
    for info in infos:
        table.add_row(
            info.id,
            info.name,
            "yes" if info.accessible else "no",
            str(info.network_count),
            info.api_key_masked,
            info.error or "",
        )
    return table


def build_matches_table(serial: str, matches: list[DeviceMatch]) -> Table:
    table = Table(title=f"Device {serial}")
    table.add_column("Organization", style="cyan")
    table.add_column("Network", style="white")
    table.add_column("Name", style="magenta")
    table.add_column("Model")
    for match in matches:
        table.add_row(
            f"{match.organization.name} ({match.organization_id})",
            f"{match.network.name} ({match.network.id})",
            match.device.name or "",
            match.device.model or "",
        )
    return table


def build_validation_panel(result: ValidationResult) -> Panel:
    """Panel con el par de dispositivos validado (o el motivo del rechazo)."""

    if not result.success or result.devices is None:
        return Panel(Text(result.message or "Validation failed", style="red"), title="Validation", border_style="red")

    failed = result.devices.failed
    replacement = result.devices.replacement
    body = Text()
    body.append("Organization: ", style="bold")
    body.append(f"{result.organization_name} ({result.organization_id})\n")
    body.append("Network: ", style="bold")
    body.append(f"{failed.network_name or ''} ({result.network_id})\n\n")
    body.append("Failed: ", style="bold red")
    body.append(f"{failed.serial} {failed.model or ''} \"{failed.name or ''}\" status={failed.status or 'unknown'}\n")
    body.append("Replacement: ", style="bold green")
    body.append(f"{replacement.serial} {replacement.model or ''}")
    return Panel(body, title="Validation", border_style="green")


def build_operations_table(result: ReplacementResult) -> Table:
    table = Table(title="Replacement steps")
    table.add_column("#", justify="right", no_wrap=True)
    table.add_column("Step", style="white")
    table.add_column("Status")
    table.add_column("Error", style="red")
    for op in result.operations:
        table.add_row(
            str(op.step),
            op.message,
            Text(op.status.value, style=_STATUS_STYLES[op.status]),
            op.error or "",
        )
    return table


def build_summary_panel(result: ReplacementResult) -> Panel:
    if result.summary is None:
        return Panel(Text(result.message, style="red"), title="Result", border_style="red")

    body = Text()
    body.append(result.message + "\n\n")
    for item in result.summary.configuration_types:
        body.append(f"- {item}\n")
    return Panel(body, title="Result", border_style="green")
