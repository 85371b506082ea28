import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.control import RackController
from .models import (
    BaseResponse,
    BlinkRequest,
    BlinkResponse,
    ColorRequest,
    EquipmentLightResponse,
    RackUnitLightResponse,
    ScanRequest,
    SideLedsRequest,
    SideTestResponse,
    SideUpdateResponse,
    StatusResponse,
    TaskInfo,
    UnitLightResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["control"])


def get_controller(request: Request) -> RackController:
    """Dependency injection for the rack controller"""
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(
            status_code=503,
            detail="System is still starting up. Please try again in a moment.",
        )
    return controller


# Status
@router.get("/status", response_model=StatusResponse)
async def get_status(controller: RackController = Depends(get_controller)):
    """Configuration, geometry and current LED colors"""
    return controller.status()


# Sides
@router.post("/led/{side}", response_model=SideUpdateResponse)
async def set_side_leds(
    side: str,
    request: SideLedsRequest,
    controller: RackController = Depends(get_controller),
):
    """Set individual LEDs on one side"""
    return await controller.set_side_pixels(
        side, [(led.index, led.color) for led in request.leds]
    )


# Rack units (U). Range routes are declared first.
@router.post(
    "/rack-unit-u/range/{unit_range}",
    response_model=UnitLightResponse,
    response_model_exclude_none=True,
)
async def light_unit_range(
    unit_range: str,
    request: ColorRequest,
    controller: RackController = Depends(get_controller),
):
    """Light every U of ``start-end`` on left and right"""
    return await controller.light_unit_range(unit_range, request.color)


@router.post("/rack-unit-u/range/{unit_range}/blink", response_model=BlinkResponse)
async def blink_unit_range(
    unit_range: str,
    request: Optional[BlinkRequest] = None,
    controller: RackController = Depends(get_controller),
):
    request = request or BlinkRequest()
    return controller.blink_unit_range(
        unit_range, request.color, request.times, request.interval
    )


@router.post(
    "/rack-unit-u/{unum}",
    response_model=UnitLightResponse,
    response_model_exclude_none=True,
)
async def light_unit(
    unum: int,
    request: ColorRequest,
    controller: RackController = Depends(get_controller),
):
    """Light one U on left and right"""
    return await controller.light_unit(unum, request.color)


@router.post("/rack-unit-u/{unum}/blink", response_model=BlinkResponse)
async def blink_unit(
    unum: int,
    request: Optional[BlinkRequest] = None,
    controller: RackController = Depends(get_controller),
):
    request = request or BlinkRequest()
    return controller.blink_unit(unum, request.color, request.times, request.interval)


# Equipments and named rack units
@router.post(
    "/equipment/{equipment_id}",
    response_model=EquipmentLightResponse,
    response_model_exclude_none=True,
)
async def light_equipment(
    equipment_id: str,
    request: ColorRequest,
    controller: RackController = Depends(get_controller),
):
    """Light all units of an equipment on its sides"""
    return await controller.light_equipment(equipment_id, request.color)


@router.post("/equipment/{equipment_id}/blink", response_model=BlinkResponse)
async def blink_equipment(
    equipment_id: str,
    request: Optional[BlinkRequest] = None,
    controller: RackController = Depends(get_controller),
):
    request = request or BlinkRequest()
    return controller.blink_equipment(
        equipment_id, request.color, request.times, request.interval
    )


@router.post(
    "/rack-unit/{unit_id}",
    response_model=RackUnitLightResponse,
    response_model_exclude_none=True,
)
async def light_rack_unit(
    unit_id: str,
    request: ColorRequest,
    controller: RackController = Depends(get_controller),
):
    """Light a rack unit declared under ``rack_units``"""
    return await controller.light_rack_unit(unit_id, request.color)


# Maintenance
@router.post("/clear", response_model=BaseResponse)
async def clear(controller: RackController = Depends(get_controller)):
    """All LEDs black"""
    return await controller.clear()


@router.post("/reset", response_model=BaseResponse)
async def reset(controller: RackController = Depends(get_controller)):
    """All LEDs white"""
    return await controller.reset()


# Diagnostics
@router.post(
    "/test/side/{side}",
    response_model=SideTestResponse,
    response_model_exclude_none=True,
)
async def test_side(side: str, controller: RackController = Depends(get_controller)):
    """Light one side blue at the start, red at the end and green between"""
    return await controller.test_side(side)


@router.post("/test/scan-u", response_model=BlinkResponse)
async def scan_units(
    request: Optional[ScanRequest] = None,
    controller: RackController = Depends(get_controller),
):
    """Blink every U from top to bottom in random colors"""
    request = request or ScanRequest()
    return controller.scan_units(
        request.from_unit,
        request.to_unit,
        request.times,
        request.interval,
        request.pause_between_units,
    )


# Background tasks
@router.get("/tasks", response_model=List[TaskInfo])
async def list_tasks(controller: RackController = Depends(get_controller)):
    return [task.to_dict() for task in controller.tasks.list_tasks()]


@router.delete("/tasks/{task_id}", response_model=TaskInfo)
async def cancel_task(task_id: str, controller: RackController = Depends(get_controller)):
    """Cancel a running blink or scan"""
    return controller.tasks.cancel(task_id).to_dict()
