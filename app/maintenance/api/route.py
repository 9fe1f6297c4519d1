from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from app.auth.api.dependencies import require_admin
from app.auth.api.dto import BaseResponse
from app.core.client_info import get_client_info
from app.maintenance.api.dto import AllowedIpRequest, UpdateMaintenanceRequest
from app.maintenance.entity.maintenance import MaintenanceAllowedIp, MaintenanceSettings
from app.maintenance.service.maintenance_service import MaintenanceService

maintenance_router = APIRouter(prefix="/admin/maintenance", tags=["Maintenance"])


def get_maintenance_service(request: Request) -> MaintenanceService:
    """Dependency to get maintenance service from app.state."""
    service = getattr(request.app.state, "maintenance_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Maintenance service not available")
    return service


def settings_to_dict(settings: Optional[MaintenanceSettings], service: MaintenanceService) -> Optional[dict]:
    if settings is None:
        return None
    data = settings.model_dump(mode="json")
    data["is_scheduled_active"] = service.is_scheduled_active(settings)
    return data


def allowed_ip_to_dict(allowed: MaintenanceAllowedIp) -> dict:
    return allowed.model_dump(mode="json")


@maintenance_router.get("", response_model=BaseResponse)
async def get_maintenance(
    admin: dict = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
):
    settings, allowed_ips = await service.get_overview()
    return BaseResponse(
        status=True,
        message="Maintenance settings fetched successfully",
        data={
            "maintenance": settings_to_dict(settings, service),
            "allowed_ips": [allowed_ip_to_dict(a) for a in allowed_ips],
        },
    )


@maintenance_router.put("", response_model=BaseResponse)
async def update_maintenance(
    body: UpdateMaintenanceRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
):
    changes = body.model_dump(include=body.model_fields_set)
    if changes.get("enabled", False) is None:
        raise HTTPException(status_code=422, detail="enabled must be true or false")
    settings = await service.update(changes, admin["user_id"], get_client_info(request))
    return BaseResponse(
        status=True,
        message="Maintenance mode settings updated successfully",
        data={"maintenance": settings_to_dict(settings, service)},
    )


@maintenance_router.post("/allowed-ips")
async def add_allowed_ip(
    body: AllowedIpRequest,
    request: Request,
    admin: dict = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
):
    allowed = await service.add_allowed_ip(body.ip_address, body.description, admin["user_id"],
                                           get_client_info(request))
    response = BaseResponse(
        status=True,
        message="IP added to allowed list successfully",
        data={"allowed_ip": allowed_ip_to_dict(allowed)},
    )
    return JSONResponse(status_code=201, content=response.model_dump())


@maintenance_router.delete("/allowed-ips/{allowed_id}", response_model=BaseResponse)
async def remove_allowed_ip(
    allowed_id: int,
    request: Request,
    admin: dict = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
):
    await service.remove_allowed_ip(allowed_id, admin["user_id"], get_client_info(request))
    return BaseResponse(status=True, message="IP removed from allowed list successfully")
