"""Modelos del dominio (Pydantic v2).

- Los nombres de campo son snake_case en Python y camelCase en el borde
  (API de Meraki y respuestas JSON del servidor), vía `alias_generator`.
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class OrganizationCredential(BaseModel):
    """Entrada del registro: una organización y su API key.

    Inmutable; se crea al arrancar y vive lo que vive el proceso.
    """

    model_config = ConfigDict(frozen=True)

    organization_id: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1, repr=False)

    @property
    def masked_key(self) -> str:
        return mask_api_key(self.api_key)


def mask_api_key(api_key: str) -> str:
    if len(api_key) <= 10:
        return "*" * len(api_key)
    return f"{api_key[:6]}...{api_key[-4:]}"


class Organization(CamelModel):
    id: str
    name: str = "Unknown"
    url: str | None = None


class OrganizationInfo(CamelModel):
    """Resumen de accesibilidad de una organización configurada."""

    id: str
    name: str = "Unknown"
    url: str | None = None
    accessible: bool = False
    network_count: int = 0
    api_key_masked: str = ""
    error: str | None = None


class Network(CamelModel):
    id: str
    name: str = ""
    organization_id: str | None = None
    product_types: list[str] = Field(default_factory=list)


class Device(CamelModel):
    """Dispositivo tal como lo devuelve `GET /networks/{id}/devices/{serial}`.

    Campos desconocidos se conservan (`extra="allow"`) para no perder datos
    de la plataforma al reenviarlos al cliente.
    """

    model_config = ConfigDict(extra="allow")

    serial: str = Field(..., min_length=1)
    model: str | None = None
    name: str | None = Field(
        default=None,
        description="Hostname visible en el Dashboard (opcional).",
    )
    tags: list[str] = Field(default_factory=list)
    address: str | None = None
    lat: float | None = None
    lng: float | None = None
    floor_plan_id: str | None = None
    notes: str | None = None
    network_id: str | None = Field(
        default=None,
        description="Red propietaria; ausente = sin reclamar (inventario).",
    )
    mac: str | None = None
    lan_ip: str | None = None
    firmware: str | None = None
    product_type: str | None = None

    # Contexto añadido durante la localización/validación.
    network_name: str | None = None
    organization_id: str | None = None
    organization_name: str | None = None
    status: str | None = None
    last_reported_at: str | None = None
    public_ip: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> Any:
        # La API antigua devolvía tags como string separado por espacios.
        if value is None:
            return []
        if isinstance(value, str):
            return [t for t in value.split() if t]
        return value

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class InventoryDevice(CamelModel):
    serial: str
    model: str | None = None
    name: str | None = None
    mac: str | None = None
    network_id: str | None = None
    product_type: str | None = None
    claimed_at: str | None = None
    organization_name: str | None = None


class DeviceStatus(CamelModel):
    serial: str
    status: str | None = None
    last_reported_at: str | None = None
    public_ip: str | None = None
    lan_ip: str | None = None


class DeviceMatch(CamelModel):
    """Resultado del localizador: dispositivo + red + organización propietarias."""

    device: Device
    network: Network
    organization: Organization
    organization_id: str

    @property
    def network_id(self) -> str:
        return self.network.id


class CapabilityState(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    ERRORED = "errored"


class CapabilityResult(CamelModel):
    """Resultado explícito de una capacidad opcional (radio, puertos de switch).

    `absent` = no aplica al dispositivo; `errored` = falló pero se ignoró.
    """

    model_config = ConfigDict(frozen=True)

    state: CapabilityState
    value: Any = None
    error: str | None = None

    @classmethod
    def present(cls, value: Any) -> "CapabilityResult":
        return cls(state=CapabilityState.PRESENT, value=value)

    @classmethod
    def absent(cls) -> "CapabilityResult":
        return cls(state=CapabilityState.ABSENT)

    @classmethod
    def errored(cls, error: str) -> "CapabilityResult":
        return cls(state=CapabilityState.ERRORED, error=error)

    @property
    def is_present(self) -> bool:
        return self.state is CapabilityState.PRESENT


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


class OperationStep(CamelModel):
    """Registro inmutable de un paso del pipeline de reemplazo."""

    model_config = ConfigDict(frozen=True)

    step: int = Field(..., ge=1)
    message: str = Field(..., min_length=1)
    status: StepStatus = StepStatus.PENDING
    timestamp: datetime = Field(default_factory=utc_now)
    error: str | None = None

    def transition(
        self,
        status: StepStatus,
        *,
        error: str | None = None,
        at: datetime | None = None,
    ) -> "OperationStep":
        return self.model_copy(update={"status": status, "error": error, "timestamp": at or utc_now()})


class ValidatedDevices(CamelModel):
    failed: Device
    replacement: InventoryDevice


class ValidationResult(CamelModel):
    success: bool
    message: str | None = None
    error_code: str | None = None
    devices: ValidatedDevices | None = None
    network_id: str | None = None
    organization_id: str | None = None
    organization_name: str | None = None


class ReplacementSummary(CamelModel):
    failed_device: str
    replacement_device: str
    network_id: str
    organization_id: str
    hostname_transferred: str
    configuration_types: list[str] = Field(default_factory=list)
    wireless_settings: CapabilityResult
    switch_settings: CapabilityResult


class ReplacementResult(CamelModel):
    success: bool
    message: str
    error_code: str | None = None
    operations: list[OperationStep] = Field(default_factory=list)
    summary: ReplacementSummary | None = None

    def step(self, number: int) -> OperationStep | None:
        for op in self.operations:
            if op.step == number:
                return op
        return None
