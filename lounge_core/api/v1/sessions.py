from typing import List, Optional

from fastapi import APIRouter, Depends

from lounge_core.api.dependencies import get_session_manager
from lounge_core.core.exceptions import LoungeCoreException, to_http_exception
from lounge_core.schemas import (
    ActiveSessionResponse,
    AttachControllerRequest,
    EndSessionResponse,
    SessionResponse,
    StartSessionRequest,
)
from lounge_core.services.session import SessionLifecycleManager

router = APIRouter()


@router.post("/sessions", response_model=SessionResponse)
def start_session(
    request: StartSessionRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.start_session(
            station_id=request.station_id,
            user_id=request.user_id,
            game_id=request.game_id,
            membership_type=request.membership_type,
            controller_ids=request.controller_ids,
            created_by=request.created_by,
        )
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.get("/sessions/active", response_model=List[ActiveSessionResponse])
def list_active_sessions(
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    return manager.list_active_sessions()


@router.get("/users/{user_id}/sessions", response_model=List[SessionResponse])
def list_user_sessions(
    user_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.list_user_sessions(user_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.post("/sessions/{session_id}/controllers", response_model=SessionResponse)
def attach_controller(
    session_id: int,
    request: AttachControllerRequest,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.attach_controller(session_id, request.controller_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.delete(
    "/sessions/{session_id}/controllers/{controller_id}",
    response_model=SessionResponse,
)
def detach_controller(
    session_id: int,
    controller_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.detach_controller(session_id, controller_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.get(
    "/stations/{station_id}/session",
    response_model=Optional[ActiveSessionResponse],
)
def get_active_session(
    station_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.get_active_session(station_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.post("/stations/{station_id}/end", response_model=EndSessionResponse)
def end_session(
    station_id: int,
    manager: SessionLifecycleManager = Depends(get_session_manager),
):
    try:
        return manager.end_session(station_id)
    except LoungeCoreException as e:
        raise to_http_exception(e)
