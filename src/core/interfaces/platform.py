"""Contrato de la plataforma de gestión de dispositivos.

`DevicePlatform` es el cliente de UNA organización (una API key). El Core
solo depende de este Protocol; `adapters.meraki_client.MerakiClient` es la
implementación HTTP y los tests usan un fake en memoria.

Cada método puede lanzar `RemoteNotFoundError`, `RemoteForbiddenError`,
`RemoteRateLimitError`, `RemoteTransportError` o `RemoteRequestError`.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from core.domain.models import (
    Device,
    DeviceStatus,
    InventoryDevice,
    Network,
    Organization,
)


@runtime_checkable
class DevicePlatform(Protocol):
    async def get_organization(self, organization_id: str) -> Organization:
        ...

    async def list_networks(self, organization_id: str) -> list[Network]:
        ...

    async def get_network(self, network_id: str) -> Network:
        ...

    async def get_device(self, network_id: str, serial: str) -> Device:
        ...

    async def list_inventory(self, organization_id: str) -> list[InventoryDevice]:
        ...

    async def get_device_statuses(self, organization_id: str) -> list[DeviceStatus]:
        ...

    async def claim_devices(self, network_id: str, serials: Sequence[str]) -> None:
        ...

    async def update_device(self, network_id: str, serial: str, payload: dict[str, Any]) -> Device:
        ...

    async def remove_device(self, network_id: str, serial: str) -> None:
        ...

    async def get_radio_settings(self, network_id: str, serial: str) -> dict[str, Any]:
        ...

    async def update_radio_settings(self, network_id: str, serial: str, settings: dict[str, Any]) -> None:
        ...

    async def list_switch_ports(self, network_id: str, serial: str) -> list[dict[str, Any]]:
        ...

    async def update_switch_port(
        self,
        network_id: str,
        serial: str,
        port_id: str,
        config: dict[str, Any],
    ) -> None:
        ...

    async def aclose(self) -> None:
        ...
