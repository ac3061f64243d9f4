"""Read-only discovery helpers over the configured organizations."""

from __future__ import annotations

import logging
from typing import Any

from core.domain.models import Network, Organization, OrganizationInfo, utc_now
from core.errors import RemoteError, format_error_message
from core.services.registry import OrganizationRegistry

logger = logging.getLogger(__name__)


class OrganizationDirectory:
    def __init__(self, registry: OrganizationRegistry) -> None:
        self._registry = registry

    async def organizations_info(self) -> list[OrganizationInfo]:
        infos: list[OrganizationInfo] = []
        for credential in self._registry:
            org_id = credential.organization_id
            client = self._registry.client_for(org_id)
            try:
                organization = await client.get_organization(org_id)
                networks = await client.list_networks(org_id)
            except RemoteError as exc:
                logger.warning("Organization %s is not accessible: %s", org_id, exc)
                infos.append(
                    OrganizationInfo(
                        id=org_id,
                        accessible=False,
                        api_key_masked=credential.masked_key,
                        error=format_error_message(exc),
                    )
                )
                continue
            infos.append(
                OrganizationInfo(
                    id=org_id,
                    name=organization.name,
                    url=organization.url,
                    accessible=True,
                    network_count=len(networks),
                    api_key_masked=credential.masked_key,
                )
            )
        return infos

    async def health(self) -> dict[str, Any]:
        infos = await self.organizations_info()
        accessible = [i for i in infos if i.accessible]
        return {
            "success": True,
            "message": "API is healthy",
            "timestamp": utc_now().isoformat(),
            "organizations": {
                "total": len(infos),
                "accessible": len(accessible),
                "details": [
                    {
                        "id": i.id,
                        "name": i.name,
                        "accessible": i.accessible,
                        "networkCount": i.network_count,
                        "error": i.error,
                    }
                    for i in infos
                ],
            },
        }

    async def networks(self) -> list[Network]:
        networks: list[Network] = []
        for org_id in self._registry.organization_ids:
            client = self._registry.client_for(org_id)
            try:
                org_networks = await client.list_networks(org_id)
            except RemoteError as exc:
                logger.warning("Could not get networks for organization %s: %s", org_id, exc)
                continue
            networks.extend(n.model_copy(update={"organization_id": org_id}) for n in org_networks)
        return networks

    async def first_organization(self) -> Organization:
        """Metadata of the first configured organization (single-org clients)."""

        org_id = self._registry.organization_ids[0]
        return await self._registry.client_for(org_id).get_organization(org_id)
