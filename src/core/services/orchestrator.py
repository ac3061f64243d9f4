"""Replacement orchestrator.

Four ordered steps executed against a single organization's client:

1. fetch the failed device configuration (radio / switch ports best-effort)
2. claim the replacement into the network (idempotent on "already claimed")
3. apply the copied configuration (radio / switch ports best-effort)
4. remove the failed device from the network

The first unrecoverable error marks its step `failed` and stops the run.
Already applied steps are not rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

from core.domain.models import (
    CapabilityResult,
    Device,
    OperationStep,
    ReplacementResult,
    ReplacementSummary,
    StepStatus,
    utc_now,
)
from core.errors import (
    RemoteError,
    RemoteNotFoundError,
    RmaError,
    StepExecutionError,
    error_code,
    format_error_message,
)
from core.interfaces.platform import DevicePlatform
from core.services.recorder import OperationRecorder
from core.services.registry import OrganizationRegistry

logger = logging.getLogger(__name__)

STEP_FETCH = 1
STEP_CLAIM = 2
STEP_APPLY = 3
STEP_REMOVE = 4

STEP_MESSAGES: dict[int, str] = {
    STEP_FETCH: "Retrieving failed device configuration",
    STEP_CLAIM: "Claiming replacement device to network",
    STEP_APPLY: "Applying configuration to replacement device",
    STEP_REMOVE: "Removing failed device from network",
}

ALREADY_CLAIMED = "already claimed"

Clock = Callable[[], datetime]


class StepHistory:
    """Ordered history of one run; a record is appended once it is terminal."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._records: list[OperationStep] = []

    def begin(self, step: int) -> OperationStep:
        pending = OperationStep(step=step, message=STEP_MESSAGES[step], timestamp=self._clock())
        logger.info("Step %d: %s", step, pending.message)
        return pending.transition(StepStatus.IN_PROGRESS, at=self._clock())

    def complete(self, running: OperationStep) -> OperationStep:
        done = running.transition(StepStatus.COMPLETED, at=self._clock())
        self._records.append(done)
        return done

    def fail(self, running: OperationStep, error: str) -> OperationStep:
        failed = running.transition(StepStatus.FAILED, error=error, at=self._clock())
        self._records.append(failed)
        return failed

    @property
    def records(self) -> list[OperationStep]:
        return list(self._records)


@dataclass(frozen=True)
class ConfigurationSnapshot:
    device: Device
    radio_settings: CapabilityResult
    switch_ports: CapabilityResult


def replacement_note(failed_serial: str, replaced_at: datetime) -> str:
    return f"[Replaced {failed_serial} on {replaced_at.isoformat(timespec='seconds')}]"


def build_configuration_payload(
    failed_device: Device,
    *,
    failed_serial: str,
    replacement_serial: str,
    replaced_at: datetime,
) -> dict[str, Any]:
    """Build the `PUT /devices/{serial}` body for the replacement.

    The hostname is copied verbatim (serial fallback); optional attributes are
    copied only when set; notes are appended to, never overwritten.
    """

    payload: dict[str, Any] = {}

    if failed_device.name and failed_device.name.strip():
        payload["name"] = failed_device.name
    else:
        payload["name"] = replacement_serial

    if failed_device.tags:
        payload["tags"] = list(failed_device.tags)
    if failed_device.address and failed_device.address.strip():
        payload["address"] = failed_device.address
    if failed_device.has_coordinates:
        payload["lat"] = failed_device.lat
        payload["lng"] = failed_device.lng
    if failed_device.floor_plan_id:
        payload["floorPlanId"] = failed_device.floor_plan_id

    note = replacement_note(failed_serial, replaced_at)
    original_notes = failed_device.notes or ""
    payload["notes"] = f"{original_notes} {note}" if original_notes.strip() else note
    return payload


async def fetch_capability(label: str, fetch: Callable[[], Awaitable[Any]]) -> CapabilityResult:
    try:
        value = await fetch()
    except RemoteNotFoundError:
        logger.info("Device has no %s (capability not applicable)", label)
        return CapabilityResult.absent()
    except RemoteError as exc:
        logger.warning("Could not retrieve %s: %s", label, exc)
        return CapabilityResult.errored(format_error_message(exc))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not retrieve %s: %s", label, exc, exc_info=True)
        return CapabilityResult.errored(str(exc) or type(exc).__name__)
    logger.info("Retrieved %s", label)
    return CapabilityResult.present(value)


class ReplacementOrchestrator:
    def __init__(
        self,
        registry: OrganizationRegistry,
        recorder: OperationRecorder,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._registry = registry
        self._recorder = recorder
        self._clock = clock

    async def replace(
        self,
        failed_serial: str,
        replacement_serial: str,
        network_id: str,
        organization_id: str,
    ) -> ReplacementResult:
        history = StepHistory(self._clock)
        running: OperationStep | None = None
        logger.info(
            "Starting replacement %s -> %s in network %s, organization %s",
            failed_serial,
            replacement_serial,
            network_id,
            organization_id,
        )

        try:
            client = self._registry.client_for(organization_id)

            running = history.begin(STEP_FETCH)
            snapshot = await self._fetch_configuration(client, network_id, failed_serial)
            history.complete(running)

            running = history.begin(STEP_CLAIM)
            await self._claim(client, network_id, replacement_serial)
            history.complete(running)

            running = history.begin(STEP_APPLY)
            payload = build_configuration_payload(
                snapshot.device,
                failed_serial=failed_serial,
                replacement_serial=replacement_serial,
                replaced_at=self._clock(),
            )
            wireless, switch = await self._apply_configuration(
                client, network_id, replacement_serial, payload, snapshot
            )
            history.complete(running)

            running = history.begin(STEP_REMOVE)
            await client.remove_device(network_id, failed_serial)
            logger.info("Removed failed device %s from network", failed_serial)
            history.complete(running)
        except Exception as exc:
            if not isinstance(exc, RmaError):
                logger.exception("Unexpected error during replacement")
            failure = StepExecutionError(running.step if running else 0, str(exc), cause=exc)
            message = format_error_message(failure)
            if running is not None:
                history.fail(running, message)
            logger.error("Replacement failed at step %s: %s", failure.step or "-", exc)
            self._recorder.record(
                "FAILED",
                {
                    "organizationId": organization_id,
                    "networkId": network_id,
                    "failedSerial": failed_serial,
                    "replacementSerial": replacement_serial,
                    "failedStep": failure.step or None,
                    "error": message,
                },
            )
            return ReplacementResult(
                success=False,
                message=message,
                error_code=error_code(failure),
                operations=history.records,
            )

        summary = ReplacementSummary(
            failed_device=failed_serial,
            replacement_device=replacement_serial,
            network_id=network_id,
            organization_id=organization_id,
            hostname_transferred=payload["name"],
            configuration_types=self._configuration_types(payload["name"], wireless, switch),
            wireless_settings=wireless,
            switch_settings=switch,
        )
        self._recorder.record(
            "SUCCESS",
            {
                "organizationId": organization_id,
                "networkId": network_id,
                "failedSerial": failed_serial,
                "replacementSerial": replacement_serial,
                "hostnameTransferred": payload["name"],
                "originalHostname": snapshot.device.name or "None",
                "configurationApplied": {
                    "basic": True,
                    "hostname": True,
                    "wireless": "Wireless radio settings" in summary.configuration_types,
                    "switch": "Switch port settings" in summary.configuration_types,
                },
            },
        )
        return ReplacementResult(
            success=True,
            message=f"Device replacement completed successfully in organization {organization_id}",
            operations=history.records,
            summary=summary,
        )

    async def _fetch_configuration(
        self,
        client: DevicePlatform,
        network_id: str,
        failed_serial: str,
    ) -> ConfigurationSnapshot:
        device = await client.get_device(network_id, failed_serial)
        logger.info("Retrieved configuration for: %s", device.name or failed_serial)
        radio = await fetch_capability(
            "wireless radio settings",
            lambda: client.get_radio_settings(network_id, failed_serial),
        )
        ports = await fetch_capability(
            "switch port settings",
            lambda: client.list_switch_ports(network_id, failed_serial),
        )
        return ConfigurationSnapshot(device=device, radio_settings=radio, switch_ports=ports)

    async def _claim(self, client: DevicePlatform, network_id: str, replacement_serial: str) -> None:
        try:
            await client.claim_devices(network_id, [replacement_serial])
        except RemoteError as exc:
            if exc.mentions(ALREADY_CLAIMED):
                logger.info("Device %s already claimed in this network", replacement_serial)
                return
            raise
        logger.info("Claimed device %s to network %s", replacement_serial, network_id)

    async def _apply_configuration(
        self,
        client: DevicePlatform,
        network_id: str,
        replacement_serial: str,
        payload: dict[str, Any],
        snapshot: ConfigurationSnapshot,
    ) -> tuple[CapabilityResult, CapabilityResult]:
        await client.update_device(network_id, replacement_serial, payload)
        logger.info('Applied configuration to replacement device with hostname: "%s"', payload["name"])

        wireless = snapshot.radio_settings
        if wireless.is_present and wireless.value:
            wireless = await self._apply_radio(client, network_id, replacement_serial, wireless.value)

        switch = snapshot.switch_ports
        if switch.is_present and switch.value:
            switch = await self._apply_switch_ports(client, network_id, replacement_serial, switch.value)

        return wireless, switch

    @staticmethod
    async def _apply_radio(
        client: DevicePlatform,
        network_id: str,
        serial: str,
        settings: dict[str, Any],
    ) -> CapabilityResult:
        try:
            await client.update_radio_settings(network_id, serial, settings)
        except RemoteError as exc:
            logger.warning("Failed to apply radio settings: %s", exc)
            return CapabilityResult.errored(format_error_message(exc))
        logger.info("Applied wireless radio settings")
        return CapabilityResult.present(settings)

    @staticmethod
    async def _apply_switch_ports(
        client: DevicePlatform,
        network_id: str,
        serial: str,
        ports: list[dict[str, Any]],
    ) -> CapabilityResult:
        applied: list[str] = []
        failed: list[str] = []
        for port in ports:
            port_config = dict(port)
            port_id = port_config.pop("portId", None)
            if port_id is None:
                continue
            try:
                await client.update_switch_port(network_id, serial, str(port_id), port_config)
            except RemoteError as exc:
                logger.warning("Failed to apply switch port %s settings: %s", port_id, exc)
                failed.append(str(port_id))
                continue
            applied.append(str(port_id))

        if failed:
            return CapabilityResult.errored(
                f"{len(failed)} of {len(failed) + len(applied)} switch ports failed: {', '.join(failed)}"
            )
        logger.info("Applied switch port settings to %d ports", len(applied))
        return CapabilityResult.present(applied)

    @staticmethod
    def _configuration_types(
        hostname: str,
        wireless: CapabilityResult,
        switch: CapabilityResult,
    ) -> list[str]:
        types = [f'Hostname: "{hostname}"', "Device location and tags"]
        if wireless.is_present and wireless.value:
            types.append("Wireless radio settings")
        if switch.is_present and switch.value:
            types.append("Switch port settings")
        return types
