"""Device replacement (RMA) orchestration utilities.

This module wires the registry, locator, validator, orchestrator and
recorder together so every entry-point (HTTP API, CLI, tests) runs the same
flow. Side-effects such as printing stay in the entry-points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from core.config import AppSettings
from core.domain.models import DeviceMatch, ReplacementResult, ValidationResult, utc_now
from core.domain.serial import normalize_serial
from core.services.directory import OrganizationDirectory
from core.services.locator import DeviceLocator
from core.services.orchestrator import Clock, ReplacementOrchestrator
from core.services.recorder import OperationRecorder
from core.services.registry import ClientFactory, OrganizationRegistry
from core.services.validator import DeviceValidator

logger = logging.getLogger(__name__)

MISSING_CONTEXT_MESSAGE = "Device validation did not return the network and organization of the failed device"


@dataclass
class RmaService:
    """All collaborators needed to validate and replace devices."""

    registry: OrganizationRegistry
    recorder: OperationRecorder = field(default_factory=OperationRecorder)
    clock: Clock = utc_now

    def __post_init__(self) -> None:
        self.locator = DeviceLocator(self.registry)
        self.validator = DeviceValidator(self.locator)
        self.orchestrator = ReplacementOrchestrator(self.registry, self.recorder, clock=self.clock)
        self.directory = OrganizationDirectory(self.registry)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        *,
        client_factory: ClientFactory | None = None,
    ) -> "RmaService":
        registry = OrganizationRegistry.from_settings(settings, client_factory)
        return cls(registry=registry, recorder=OperationRecorder.from_settings(settings))

    async def validate_devices(self, failed_serial: str, replacement_serial: str) -> ValidationResult:
        return await self.validator.validate(failed_serial, replacement_serial)

    async def replace_device(self, failed_serial: str, replacement_serial: str) -> ReplacementResult:
        """Re-run validation for network/organization context, then replace."""

        validation = await self.validator.validate(failed_serial, replacement_serial)
        if not validation.success:
            logger.info("Replacement %s -> %s not started: %s", failed_serial, replacement_serial, validation.message)
            return ReplacementResult(
                success=False,
                message=validation.message or "Device validation failed",
                error_code=validation.error_code,
            )

        devices = validation.devices
        if devices is None or validation.network_id is None or validation.organization_id is None:
            logger.error("Validation of %s -> %s returned no network context", failed_serial, replacement_serial)
            return ReplacementResult(
                success=False,
                message=MISSING_CONTEXT_MESSAGE,
                error_code="missing_context",
            )

        return await self.orchestrator.replace(
            devices.failed.serial,
            devices.replacement.serial,
            validation.network_id,
            validation.organization_id,
        )

    async def search_device(self, serial: str) -> list[DeviceMatch]:
        return await self.locator.search(normalize_serial(serial))

    async def aclose(self) -> None:
        await self.registry.aclose()
