"""Cliente del Dashboard API de Meraki (una instancia por organización).

Implementa `core.interfaces.platform.DevicePlatform` sobre httpx y traduce
cada respuesta de error a la familia `RemoteError`:

- 404 -> RemoteNotFoundError
- 401/403 -> RemoteForbiddenError
- 429 -> RemoteRateLimitError (tras agotar reintentos)
- timeout / conexión -> RemoteTransportError
- resto de 4xx/5xx -> RemoteRequestError (con `errors[]` de la plataforma)
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Sequence

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import (
    Device,
    DeviceStatus,
    InventoryDevice,
    Network,
    Organization,
)
from core.errors import (
    RemoteError,
    RemoteForbiddenError,
    RemoteNotFoundError,
    RemoteRateLimitError,
    RemoteRequestError,
    RemoteTransportError,
)

logger = logging.getLogger(__name__)

_MAX_RETRY_AFTER_SECONDS = 30.0


def _safe_retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return min(_MAX_RETRY_AFTER_SECONDS, max(0.0, float(value)))
    except ValueError:
        return None


def _extract_errors(response: httpx.Response) -> list[str]:
    try:
        data = response.json()
    except ValueError:
        return []
    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list):
            return [str(e) for e in errors if e]
        if isinstance(errors, str):
            return [errors]
    return []


def _error_from_response(response: httpx.Response) -> RemoteError:
    status = response.status_code
    errors = _extract_errors(response)
    message = f"Request failed with status code {status}"
    if errors:
        message = f"{message}: {errors[0]}"

    if status == 404:
        return RemoteNotFoundError(message, status_code=status, errors=errors)
    if status in (401, 403):
        return RemoteForbiddenError(message, status_code=status, errors=errors)
    if status == 429:
        return RemoteRateLimitError(
            message,
            status_code=status,
            errors=errors,
            retry_after=_safe_retry_after_seconds(response),
        )
    return RemoteRequestError(message, status_code=status, errors=errors)


class MerakiClient:
    """Cliente HTTP ligado a una organización / API key."""

    def __init__(
        self,
        *,
        organization_id: str,
        api_key: str,
        settings: AppSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._organization_id = organization_id
        self._client = build_async_client(self._settings, api_key=api_key, transport=transport)

    @property
    def organization_id(self) -> str:
        return self._organization_id

    async def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        attempt = 0
        while True:
            logger.debug("API request [%s]: %s %s", self._organization_id, method, path)
            try:
                response = await self._client.request(method, path, json=json)
            except httpx.TimeoutException as exc:
                raise RemoteTransportError(f"Request to {path} timed out") from exc
            except httpx.HTTPError as exc:
                raise RemoteTransportError(str(exc) or type(exc).__name__) from exc

            if response.is_success:
                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError:
                    return None

            error = _error_from_response(response)
            if isinstance(error, RemoteRateLimitError) and attempt < self._settings.rate_limit_retries:
                base = error.retry_after if error.retry_after is not None else (1.0 * (2**attempt))
                logger.info(
                    "API rate limited [%s]: %s %s, retrying in %.2fs",
                    self._organization_id,
                    method,
                    path,
                    base,
                )
                attempt += 1
                await asyncio.sleep(base + random.uniform(0.0, 0.25))
                continue

            if isinstance(error, RemoteNotFoundError):
                logger.debug("API 404 [%s]: %s %s", self._organization_id, method, path)
            else:
                logger.warning(
                    "API error [%s]: %s %s -> %s %s",
                    self._organization_id,
                    method,
                    path,
                    response.status_code,
                    error.errors or response.reason_phrase,
                )
            raise error

    async def get_organization(self, organization_id: str) -> Organization:
        data = await self._request("GET", f"/organizations/{organization_id}")
        return Organization.model_validate(data)

    async def list_networks(self, organization_id: str) -> list[Network]:
        data = await self._request("GET", f"/organizations/{organization_id}/networks")
        return [Network.model_validate(n) for n in data or []]

    async def get_network(self, network_id: str) -> Network:
        data = await self._request("GET", f"/networks/{network_id}")
        return Network.model_validate(data)

    async def get_device(self, network_id: str, serial: str) -> Device:
        data = await self._request("GET", f"/networks/{network_id}/devices/{serial}")
        if not data:
            raise RemoteNotFoundError(f"Device {serial} not found in network {network_id}", status_code=404)
        return Device.model_validate(data)

    async def list_inventory(self, organization_id: str) -> list[InventoryDevice]:
        data = await self._request("GET", f"/organizations/{organization_id}/inventoryDevices")
        return [InventoryDevice.model_validate(d) for d in data or []]

    async def get_device_statuses(self, organization_id: str) -> list[DeviceStatus]:
        data = await self._request("GET", f"/organizations/{organization_id}/devices/statuses")
        return [DeviceStatus.model_validate(s) for s in data or []]

    async def claim_devices(self, network_id: str, serials: Sequence[str]) -> None:
        await self._request("POST", f"/networks/{network_id}/devices/claim", json={"serials": list(serials)})

    async def update_device(self, network_id: str, serial: str, payload: dict[str, Any]) -> Device:
        data = await self._request("PUT", f"/networks/{network_id}/devices/{serial}", json=payload)
        return Device.model_validate(data or {"serial": serial, **payload})

    async def remove_device(self, network_id: str, serial: str) -> None:
        await self._request("POST", f"/networks/{network_id}/devices/{serial}/remove")

    async def get_radio_settings(self, network_id: str, serial: str) -> dict[str, Any]:
        data = await self._request("GET", f"/networks/{network_id}/devices/{serial}/wireless/radio/settings")
        return data if isinstance(data, dict) else {}

    async def update_radio_settings(self, network_id: str, serial: str, settings: dict[str, Any]) -> None:
        await self._request(
            "PUT",
            f"/networks/{network_id}/devices/{serial}/wireless/radio/settings",
            json=settings,
        )

    async def list_switch_ports(self, network_id: str, serial: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/networks/{network_id}/devices/{serial}/switch/ports")
        return [p for p in data or [] if isinstance(p, dict)]

    async def update_switch_port(
        self,
        network_id: str,
        serial: str,
        port_id: str,
        config: dict[str, Any],
    ) -> None:
        await self._request(
            "PUT",
            f"/networks/{network_id}/devices/{serial}/switch/ports/{port_id}",
            json=config,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
