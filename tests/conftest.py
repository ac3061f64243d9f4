"""Pytest configuration and shared fixtures.

`FakeCloud` is an in-memory stand-in for the Dashboard API shared by every
organization client; each `FakeOrgClient` only sees its own organization
and records every call in `cloud.calls` as `(org_id, method, *args)`.
"""

from datetime import datetime, timezone
from typing import Any

import pytest

from core.domain.models import (
    Device,
    DeviceStatus,
    InventoryDevice,
    Network,
    Organization,
    OrganizationCredential,
)
from core.errors import RemoteForbiddenError, RemoteNotFoundError, RemoteRequestError
from core.services.recorder import OperationRecorder
from core.services.registry import OrganizationRegistry
from core.services.rma_pipeline import RmaService

FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

FAILED_SERIAL = "AAAA-1111-BBBB"
REPLACEMENT_SERIAL = "CCCC-2222-DDDD"


class FakeCloud:
    def __init__(self) -> None:
        self.organizations: dict[str, dict[str, Any]] = {}
        self.devices: dict[tuple[str, str], dict[str, Any]] = {}
        self.radio_settings: dict[str, dict[str, Any]] = {}
        self.switch_ports: dict[str, list[dict[str, Any]]] = {}
        self.failures: dict[tuple[Any, ...], Exception] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.closed: list[str] = []

    def add_org(self, org_id: str, name: str, networks: list[tuple[str, str]] = ()) -> None:
        self.organizations[org_id] = {
            "name": name,
            "networks": [{"id": nid, "name": nname} for nid, nname in networks],
            "inventory": [],
            "statuses": [],
            "forbidden": False,
        }

    def forbid(self, org_id: str) -> None:
        self.organizations[org_id]["forbidden"] = True

    def add_device(self, org_id: str, network_id: str, serial: str, **fields: Any) -> None:
        record = {"serial": serial, "model": "MR46", "networkId": network_id, **fields}
        self.devices[(network_id, serial)] = record
        self.organizations[org_id]["inventory"].append(
            {"serial": serial, "model": record["model"], "networkId": network_id}
        )

    def add_inventory(self, org_id: str, serial: str, *, network_id: str | None = None, model: str = "MR46") -> None:
        self.organizations[org_id]["inventory"].append({"serial": serial, "model": model, "networkId": network_id})

    def add_status(self, org_id: str, serial: str, **fields: Any) -> None:
        self.organizations[org_id]["statuses"].append({"serial": serial, **fields})

    def fail(self, exc: Exception, method: str, *args: Any) -> None:
        self.failures[(method, *args)] = exc

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[1] == method]

    def client(self, credential: OrganizationCredential) -> "FakeOrgClient":
        return FakeOrgClient(self, credential.organization_id)


class FakeOrgClient:
    def __init__(self, cloud: FakeCloud, organization_id: str) -> None:
        self.cloud = cloud
        self.organization_id = organization_id

    def _enter(self, method: str, *args: Any) -> dict[str, Any]:
        self.cloud.calls.append((self.organization_id, method, *args))
        failure = self.cloud.failures.get((method, *args))
        if failure is not None:
            raise failure
        org = self.cloud.organizations.get(self.organization_id)
        if org is None:
            raise RemoteNotFoundError("organization not found", status_code=404)
        if org["forbidden"]:
            raise RemoteForbiddenError("Request failed with status code 403", status_code=403)
        return org

    def _own_network(self, org: dict[str, Any], network_id: str) -> bool:
        return any(n["id"] == network_id for n in org["networks"])

    async def get_organization(self, organization_id: str) -> Organization:
        org = self._enter("get_organization", organization_id)
        return Organization(id=organization_id, name=org["name"])

    async def list_networks(self, organization_id: str) -> list[Network]:
        org = self._enter("list_networks", organization_id)
        return [Network.model_validate(n) for n in org["networks"]]

    async def get_network(self, network_id: str) -> Network:
        self._enter("get_network", network_id)
        for org in self.cloud.organizations.values():
            for n in org["networks"]:
                if n["id"] == network_id:
                    return Network.model_validate(n)
        raise RemoteNotFoundError("network not found", status_code=404)

    async def get_device(self, network_id: str, serial: str) -> Device:
        org = self._enter("get_device", network_id, serial)
        record = self.cloud.devices.get((network_id, serial))
        if record is None or not self._own_network(org, network_id):
            raise RemoteNotFoundError("device not found", status_code=404)
        return Device.model_validate(record)

    async def list_inventory(self, organization_id: str) -> list[InventoryDevice]:
        org = self._enter("list_inventory", organization_id)
        return [InventoryDevice.model_validate(d) for d in org["inventory"]]

    async def get_device_statuses(self, organization_id: str) -> list[DeviceStatus]:
        org = self._enter("get_device_statuses", organization_id)
        return [DeviceStatus.model_validate(s) for s in org["statuses"]]

    async def claim_devices(self, network_id: str, serials: list[str]) -> None:
        org = self._enter("claim_devices", network_id, tuple(serials))
        for serial in serials:
            item = next((d for d in org["inventory"] if d["serial"] == serial), None)
            if item is None:
                raise RemoteRequestError(
                    "Request failed with status code 400",
                    status_code=400,
                    errors=[f"Device with serial {serial} not found in inventory"],
                )
            if item["networkId"] == network_id:
                raise RemoteRequestError(
                    "Request failed with status code 400",
                    status_code=400,
                    errors=[f"Device with serial {serial} is already claimed and in this network"],
                )
            item["networkId"] = network_id
            self.cloud.devices[(network_id, serial)] = {
                "serial": serial,
                "model": item["model"],
                "networkId": network_id,
            }

    async def update_device(self, network_id: str, serial: str, payload: dict[str, Any]) -> Device:
        self._enter("update_device", network_id, serial)
        record = self.cloud.devices.setdefault((network_id, serial), {"serial": serial, "networkId": network_id})
        record.update(payload)
        return Device.model_validate(record)

    async def remove_device(self, network_id: str, serial: str) -> None:
        self._enter("remove_device", network_id, serial)
        self.cloud.devices.pop((network_id, serial), None)

    async def get_radio_settings(self, network_id: str, serial: str) -> dict[str, Any]:
        self._enter("get_radio_settings", network_id, serial)
        if serial not in self.cloud.radio_settings:
            raise RemoteNotFoundError("not a wireless device", status_code=404)
        return dict(self.cloud.radio_settings[serial])

    async def update_radio_settings(self, network_id: str, serial: str, settings: dict[str, Any]) -> None:
        self._enter("update_radio_settings", network_id, serial)
        self.cloud.radio_settings[serial] = dict(settings)

    async def list_switch_ports(self, network_id: str, serial: str) -> list[dict[str, Any]]:
        self._enter("list_switch_ports", network_id, serial)
        if serial not in self.cloud.switch_ports:
            raise RemoteNotFoundError("not a switch", status_code=404)
        return [dict(p) for p in self.cloud.switch_ports[serial]]

    async def update_switch_port(self, network_id: str, serial: str, port_id: str, config: dict[str, Any]) -> None:
        self._enter("update_switch_port", network_id, serial, port_id)
        ports = self.cloud.switch_ports.setdefault(serial, [])
        ports.append({"portId": port_id, **config})

    async def aclose(self) -> None:
        self.cloud.closed.append(self.organization_id)


@pytest.fixture
def cloud() -> FakeCloud:
    """Org A owns netA1 with the failed device; CCCC-2222-DDDD waits in A's inventory."""
    fake = FakeCloud()
    fake.add_org("A", "Org A", networks=[("netA1", "Branch A1")])
    fake.add_device(
        "A",
        "netA1",
        FAILED_SERIAL,
        name="ap-lobby-01",
        tags=["lobby", "floor1"],
        address="1 Main St",
        lat=37.77,
        lng=-122.41,
        notes="Installed 2021",
    )
    fake.add_inventory("A", REPLACEMENT_SERIAL)
    return fake


@pytest.fixture
def recorded() -> list[tuple[str, dict[str, Any]]]:
    return []


@pytest.fixture
def make_registry(cloud: FakeCloud):
    def build(mapping: str = "A:key-a-0123456789") -> OrganizationRegistry:
        return OrganizationRegistry.load(mapping, cloud.client)

    return build


@pytest.fixture
def make_service(make_registry, recorded):
    class ListRecorder(OperationRecorder):
        def record(self, status: str, context: dict[str, Any]) -> dict[str, Any]:
            recorded.append((status, context))
            return super().record(status, context)

    def build(mapping: str = "A:key-a-0123456789") -> RmaService:
        return RmaService(registry=make_registry(mapping), recorder=ListRecorder(), clock=lambda: FIXED_NOW)

    return build
