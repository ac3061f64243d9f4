"""Device pair validation.

`resolve` raises typed errors from `core.errors`; `validate` wraps it into a
`ValidationResult` with a translated message for the HTTP/CLI layers. The
replacement is only ever looked up in the inventory of the organization that
owns the failed device.
"""

from __future__ import annotations

import logging

from core.domain.models import (
    Device,
    ValidatedDevices,
    ValidationResult,
)
from core.domain.serial import normalize_serial_pair
from core.errors import (
    ClaimConflictError,
    DeviceNotFoundError,
    RemoteError,
    ReplacementNotFoundError,
    RmaError,
    error_code,
    format_error_message,
)
from core.interfaces.platform import DevicePlatform
from core.services.locator import DeviceLocator

logger = logging.getLogger(__name__)


class DeviceValidator:
    def __init__(self, locator: DeviceLocator) -> None:
        self._locator = locator

    async def resolve(self, failed_serial: str, replacement_serial: str) -> ValidationResult:
        failed_serial, replacement_serial = normalize_serial_pair(failed_serial, replacement_serial)
        registry = self._locator.registry
        logger.info(
            "Validating devices across %d organizations: %s -> %s",
            len(registry),
            failed_serial,
            replacement_serial,
        )

        match = await self._locator.locate(failed_serial)
        if match is None:
            raise DeviceNotFoundError(failed_serial, registry.organization_ids)

        organization_id = match.organization_id
        organization_name = match.organization.name
        network_id = match.network_id
        client = registry.client_for(organization_id)

        inventory = await client.list_inventory(organization_id)
        replacement = next((d for d in inventory if d.serial.upper() == replacement_serial), None)
        if replacement is None:
            raise ReplacementNotFoundError(replacement_serial, organization_name)
        logger.info("Found replacement device in inventory: %s", replacement.model)

        if replacement.network_id and replacement.network_id != network_id:
            network_name = await self._network_name(client, replacement.network_id)
            raise ClaimConflictError(replacement_serial, replacement.network_id, network_name)

        failed = await self.enrich(client, match.device, organization_id)
        return ValidationResult(
            success=True,
            devices=ValidatedDevices(
                failed=failed,
                replacement=replacement.model_copy(update={"organization_name": organization_name}),
            ),
            network_id=network_id,
            organization_id=organization_id,
            organization_name=organization_name,
        )

    async def validate(self, failed_serial: str, replacement_serial: str) -> ValidationResult:
        try:
            return await self.resolve(failed_serial, replacement_serial)
        except RmaError as exc:
            logger.error("Device validation failed: %s", exc)
            return ValidationResult(
                success=False,
                message=format_error_message(exc),
                error_code=error_code(exc),
            )

    @staticmethod
    async def _network_name(client: DevicePlatform, network_id: str) -> str:
        try:
            network = await client.get_network(network_id)
        except RemoteError as exc:
            logger.warning("Could not resolve name of network %s: %s", network_id, exc)
            return network_id
        return network.name or network_id

    @staticmethod
    async def enrich(client: DevicePlatform, device: Device, organization_id: str) -> Device:
        """Attach live status to `device`; return it untouched if statuses are unavailable."""

        try:
            statuses = await client.get_device_statuses(organization_id)
        except RemoteError as exc:
            logger.warning("Could not get enhanced device info: %s", exc)
            return device
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not get enhanced device info: %s", exc, exc_info=True)
            return device

        status = next((s for s in statuses if s.serial == device.serial), None)
        return device.model_copy(
            update={
                "status": (status.status if status else None) or "unknown",
                "last_reported_at": status.last_reported_at if status else None,
                "public_ip": status.public_ip if status else None,
                "lan_ip": (status.lan_ip if status else None) or device.lan_ip,
            }
        )
