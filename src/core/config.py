"""Configuración del Core.

- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI
  ni el servidor HTTP.
- Los adaptadores (cliente Meraki, recorder) leen config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "meraki-rma"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "meraki-rma"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "meraki-rma"
    return Path.home() / ".config" / "meraki-rma"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# meraki-rma user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    `orgs` se mantiene como texto crudo (`ORG_ID:API_KEY,ORG_ID:API_KEY`);
    el parseo y sus errores viven en `OrganizationRegistry.load`.
    """

    model_config = SettingsConfigDict(
        env_prefix="MERAKI_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    orgs: str | None = Field(
        default=None,
        description="Mapeo ordenado organización -> API key (ORG_ID:API_KEY,...).",
    )
    base_url: str = Field(
        default="https://api.meraki.com/api/v1",
        min_length=8,
        description="Base URL de la API del Dashboard.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    rate_limit_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Reintentos ante HTTP 429 antes de propagar el error.",
    )
    user_agent: str = Field(
        default="meraki-rma/0.1",
        min_length=1,
        description="User-Agent enviado a la API.",
    )

    log_to_file: bool = Field(
        default=False,
        description="Persistir cada operación de reemplazo en un fichero JSON lines.",
    )
    operations_log_path: Path = Field(
        default=Path("logs") / "operations.log",
        description="Ruta del log de operaciones (append-only).",
    )
    log_level: str = Field(
        default="INFO",
        description="Nivel de logging raíz.",
    )

    server_host: str = Field(
        default="0.0.0.0",
        description="Host de escucha del servidor HTTP.",
    )
    server_port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Puerto de escucha del servidor HTTP.",
    )
