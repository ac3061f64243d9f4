import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.domain.serial import is_valid_serial
from core.errors import RemoteError, format_error_message
from core.services.rma_pipeline import RmaService
from server.schemas import SerialPairRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_service(request: Request) -> RmaService:
    return request.app.state.service


Service = Annotated[RmaService, Depends(get_service)]


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("/health", tags=["monitoring"], summary="Accessibility of every configured organization")
async def health(service: Service) -> dict[str, Any]:
    return await service.directory.health()


@router.get("/organizations", tags=["organizations"], summary="List configured organizations")
async def organizations(service: Service) -> dict[str, Any]:
    infos = await service.directory.organizations_info()
    return {"success": True, "organizations": [_dump(i) for i in infos]}


@router.get("/organization", tags=["organizations"], summary="First configured organization")
async def organization(service: Service) -> dict[str, Any]:
    try:
        org = await service.directory.first_organization()
    except RemoteError as exc:
        return {"success": False, "message": format_error_message(exc)}
    return {"success": True, "organization": _dump(org)}


@router.get("/networks", tags=["organizations"], summary="Networks across all organizations")
async def networks(service: Service) -> dict[str, Any]:
    found = await service.directory.networks()
    return {"success": True, "networks": [_dump(n) for n in found]}


@router.get("/search-device/{serial}", tags=["devices"], summary="Find a device in every organization")
async def search_device(serial: str, service: Service) -> Any:
    if not is_valid_serial(serial):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid serial number format (should be XXXX-XXXX-XXXX)"},
        )
    results = await service.search_device(serial)
    return {"success": True, "results": [_dump(r) for r in results], "found": bool(results)}


@router.post("/validate-devices", tags=["devices"], summary="Validate a failed/replacement device pair")
async def validate_devices(body: SerialPairRequest, service: Service) -> dict[str, Any]:
    result = await service.validate_devices(body.failed_serial, body.replacement_serial)
    return _dump(result)


@router.post("/replace-device", tags=["devices"], summary="Replace a failed device")
async def replace_device(body: SerialPairRequest, service: Service) -> dict[str, Any]:
    """
    Re-validate the pair, then run the four replacement steps.

    The response always carries the step history; on failure the last
    step is `failed` with its error and later steps are absent.
    """
    result = await service.replace_device(body.failed_serial, body.replacement_serial)
    return _dump(result)
