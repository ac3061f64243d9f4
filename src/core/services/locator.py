"""Cross-organization device locator.

The search space is modelled as a lazy async generator of
(organization, network) candidates. `locate` consumes it until the first
match and then closes it, so no remote call is issued after a hit;
`search` drains it completely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncGenerator

from core.domain.models import Device, DeviceMatch, Network, Organization, OrganizationCredential
from core.errors import (
    OrganizationUnreachableError,
    RemoteError,
    RemoteNotFoundError,
    format_error_message,
)
from core.interfaces.platform import DevicePlatform
from core.services.registry import OrganizationRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchCandidate:
    """One network to probe, with the organization context that owns it."""

    credential: OrganizationCredential
    organization: Organization
    network: Network
    client: DevicePlatform

    @property
    def organization_id(self) -> str:
        return self.credential.organization_id


class DeviceLocator:
    def __init__(self, registry: OrganizationRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> OrganizationRegistry:
        return self._registry

    async def search_space(self) -> AsyncGenerator[SearchCandidate, None]:
        """Yield every (organization, network) pair in configuration order.

        Organizations whose metadata or network list cannot be read are
        logged and skipped. Each call starts a new walk.
        """

        for credential in self._registry:
            org_id = credential.organization_id
            client = self._registry.client_for(org_id)
            try:
                organization = await client.get_organization(org_id)
                networks = await client.list_networks(org_id)
            except RemoteError as exc:
                unreachable = OrganizationUnreachableError(org_id, format_error_message(exc))
                logger.warning("%s", unreachable)
                continue
            except Exception as exc:  # noqa: BLE001
                unreachable = OrganizationUnreachableError(org_id, str(exc) or type(exc).__name__)
                logger.warning("%s", unreachable, exc_info=True)
                continue

            logger.info("Searching organization %s (%s): %d networks", organization.name, org_id, len(networks))
            for network in networks:
                yield SearchCandidate(
                    credential=credential,
                    organization=organization,
                    network=network,
                    client=client,
                )

    async def _probe(self, candidate: SearchCandidate, serial: str) -> Device | None:
        network = candidate.network
        try:
            return await candidate.client.get_device(network.id, serial)
        except RemoteNotFoundError:
            logger.debug("Device %s not found in network %s (%s)", serial, network.name, network.id)
            return None
        except RemoteError as exc:
            logger.warning("Error checking network %s (%s): %s", network.name, network.id, exc)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error checking network %s (%s): %s", network.name, network.id, exc, exc_info=True)
            return None

    @staticmethod
    def _to_match(candidate: SearchCandidate, device: Device) -> DeviceMatch:
        network = candidate.network
        if network.organization_id is None:
            network = network.model_copy(update={"organization_id": candidate.organization_id})
        contextual = device.model_copy(
            update={
                "network_id": device.network_id or network.id,
                "network_name": network.name,
                "organization_id": candidate.organization_id,
                "organization_name": candidate.organization.name,
            }
        )
        return DeviceMatch(
            device=contextual,
            network=network,
            organization=candidate.organization,
            organization_id=candidate.organization_id,
        )

    async def locate(self, serial: str) -> DeviceMatch | None:
        """Return the first network (across all organizations) holding `serial`."""

        candidates = self.search_space()
        try:
            async for candidate in candidates:
                device = await self._probe(candidate, serial)
                if device is not None:
                    logger.info(
                        "Found device %s in organization %s, network %s",
                        serial,
                        candidate.organization.name,
                        candidate.network.name,
                    )
                    return self._to_match(candidate, device)
        finally:
            await candidates.aclose()
        return None

    async def search(self, serial: str) -> list[DeviceMatch]:
        matches: list[DeviceMatch] = []
        async for candidate in self.search_space():
            device = await self._probe(candidate, serial)
            if device is not None:
                matches.append(self._to_match(candidate, device))
        return matches
