"""Organization registry.

Parses the `ORG_ID:API_KEY,ORG_ID:API_KEY` mapping once at start-up and
binds one platform client per organization. The registry is read-only after
construction; iteration follows configuration order.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Iterator, Mapping

from core.config import AppSettings
from core.domain.models import OrganizationCredential
from core.errors import ConfigurationError, UnknownOrganizationError
from core.interfaces.platform import DevicePlatform

logger = logging.getLogger(__name__)

ClientFactory = Callable[[OrganizationCredential], DevicePlatform]

MAPPING_FORMAT = "ORG_ID:API_KEY,ORG_ID:API_KEY"


def parse_organization_mapping(mapping: str | None) -> list[OrganizationCredential]:
    """Parse the raw mapping into ordered credentials.

    Raises `ConfigurationError` when the mapping is missing or empty, when an
    entry lacks either part, or when an organization id repeats.
    """

    if mapping is None or not mapping.strip():
        raise ConfigurationError(f"MERAKI_ORGS is required (format: {MAPPING_FORMAT})")

    credentials: list[OrganizationCredential] = []
    seen: set[str] = set()
    for raw_entry in mapping.split(","):
        entry = raw_entry.strip()
        org_id, _, api_key = entry.partition(":")
        org_id = org_id.strip()
        api_key = api_key.strip()
        if not org_id or not api_key:
            raise ConfigurationError(
                f"Failed to parse MERAKI_ORGS: invalid mapping {entry!r}. Expected format: ORG_ID:API_KEY"
            )
        if org_id in seen:
            raise ConfigurationError(f"Failed to parse MERAKI_ORGS: organization {org_id} is listed twice")
        seen.add(org_id)
        credentials.append(OrganizationCredential(organization_id=org_id, api_key=api_key))
    return credentials


def meraki_client_factory(settings: AppSettings) -> ClientFactory:
    from adapters.meraki_client import MerakiClient  # noqa: PLC0415

    def build(credential: OrganizationCredential) -> DevicePlatform:
        return MerakiClient(
            organization_id=credential.organization_id,
            api_key=credential.api_key,
            settings=settings,
        )

    return build


class OrganizationRegistry:
    """Immutable (organization id -> credential, client) table."""

    def __init__(
        self,
        credentials: list[OrganizationCredential],
        client_factory: ClientFactory,
    ) -> None:
        if not credentials:
            raise ConfigurationError(f"At least one organization is required (format: {MAPPING_FORMAT})")
        self._credentials: Mapping[str, OrganizationCredential] = MappingProxyType(
            {c.organization_id: c for c in credentials}
        )
        self._clients: Mapping[str, DevicePlatform] = MappingProxyType(
            {c.organization_id: client_factory(c) for c in credentials}
        )

    @classmethod
    def load(cls, mapping: str | None, client_factory: ClientFactory) -> "OrganizationRegistry":
        registry = cls(parse_organization_mapping(mapping), client_factory)
        logger.info(
            "Configured for %d organizations: %s",
            len(registry),
            ", ".join(registry.organization_ids),
        )
        return registry

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        client_factory: ClientFactory | None = None,
    ) -> "OrganizationRegistry":
        return cls.load(settings.orgs, client_factory or meraki_client_factory(settings))

    def __len__(self) -> int:
        return len(self._credentials)

    def __iter__(self) -> Iterator[OrganizationCredential]:
        return iter(self._credentials.values())

    def __contains__(self, organization_id: object) -> bool:
        return organization_id in self._credentials

    @property
    def organization_ids(self) -> list[str]:
        return list(self._credentials.keys())

    def credential_for(self, organization_id: str) -> OrganizationCredential:
        try:
            return self._credentials[organization_id]
        except KeyError:
            raise UnknownOrganizationError(organization_id) from None

    def client_for(self, organization_id: str) -> DevicePlatform:
        try:
            return self._clients[organization_id]
        except KeyError:
            raise UnknownOrganizationError(organization_id) from None

    async def aclose(self) -> None:
        for organization_id, client in self._clients.items():
            try:
                await client.aclose()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not close client for organization %s: %s", organization_id, exc)
