from typing import List

from fastapi import APIRouter, Depends, Response

from lounge_core.api.dependencies import get_equipment_service
from lounge_core.core.exceptions import LoungeCoreException, to_http_exception
from lounge_core.schemas import (
    AvailabilitySummary,
    ControllerStatusResponse,
    MaintenanceRequest,
    StationStatusResponse,
)
from lounge_core.services.equipment import EquipmentService

router = APIRouter()


@router.get("/stations", response_model=List[StationStatusResponse])
def list_stations(
    equipment: EquipmentService = Depends(get_equipment_service),
):
    return equipment.list_stations()


@router.get(
    "/controllers/available", response_model=List[ControllerStatusResponse]
)
def list_available_controllers(
    equipment: EquipmentService = Depends(get_equipment_service),
):
    return equipment.list_available_controllers()


@router.put("/stations/{station_id}/maintenance", response_model=StationStatusResponse)
def set_station_maintenance(
    station_id: int,
    request: MaintenanceRequest,
    equipment: EquipmentService = Depends(get_equipment_service),
):
    try:
        return equipment.set_station_maintenance(station_id, request.maintenance)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.put(
    "/controllers/{controller_id}/maintenance",
    response_model=ControllerStatusResponse,
)
def set_controller_maintenance(
    controller_id: int,
    request: MaintenanceRequest,
    equipment: EquipmentService = Depends(get_equipment_service),
):
    try:
        return equipment.set_controller_maintenance(controller_id, request.maintenance)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.get(
    "/controllers/maintenance-due", response_model=List[ControllerStatusResponse]
)
def controllers_due_for_maintenance(
    equipment: EquipmentService = Depends(get_equipment_service),
):
    return equipment.controllers_due_for_maintenance()


@router.get("/availability", response_model=AvailabilitySummary)
def availability_summary(
    equipment: EquipmentService = Depends(get_equipment_service),
):
    return equipment.availability_summary()


@router.delete("/stations/{station_id}", status_code=204)
def delete_station(
    station_id: int,
    equipment: EquipmentService = Depends(get_equipment_service),
):
    try:
        equipment.delete_station(station_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)
    return Response(status_code=204)


@router.delete("/games/{game_id}", status_code=204)
def delete_game(
    game_id: int,
    equipment: EquipmentService = Depends(get_equipment_service),
):
    try:
        equipment.delete_game(game_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)
    return Response(status_code=204)


@router.delete("/controllers/{controller_id}", status_code=204)
def delete_controller(
    controller_id: int,
    equipment: EquipmentService = Depends(get_equipment_service),
):
    try:
        equipment.delete_controller(controller_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)
    return Response(status_code=204)
