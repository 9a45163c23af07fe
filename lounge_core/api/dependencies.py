from datetime import datetime
from functools import lru_cache
from typing import Callable

from cachetools import TTLCache
from fastapi import Depends, Request
from lounge_shared.db.repositories import (
    ControllerRepository,
    DiscountRepository,
    GameRepository,
    SessionRepository,
    StationRepository,
    UserRepository,
)
from sqlalchemy.orm import Session

from lounge_core.config.settings import Settings
from lounge_core.core.utils import utcnow
from lounge_core.services.availability import AvailabilityLedger
from lounge_core.services.catalog import CatalogService, DirectoryService
from lounge_core.services.discount import DiscountService
from lounge_core.services.equipment import EquipmentService
from lounge_core.services.power import PowerSignaller
from lounge_core.services.session import SessionLifecycleManager


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_session(request: Request) -> Session:
    session = request.app.state.sessionmaker()
    try:
        yield session
    finally:
        session.close()


def get_power_signaller(request: Request) -> PowerSignaller:
    return request.app.state.power_signaller


def get_discount_cache(request: Request) -> TTLCache:
    return request.app.state.discount_cache


def get_discount_lock(request: Request):
    return request.app.state.discount_lock


def get_station_repository(session: Session = Depends(get_session)) -> StationRepository:
    return StationRepository(session)


def get_controller_repository(
    session: Session = Depends(get_session),
) -> ControllerRepository:
    return ControllerRepository(session)


def get_game_repository(session: Session = Depends(get_session)) -> GameRepository:
    return GameRepository(session)


def get_session_repository(session: Session = Depends(get_session)) -> SessionRepository:
    return SessionRepository(session)


def get_ledger(
    station_repo: StationRepository = Depends(get_station_repository),
    controller_repo: ControllerRepository = Depends(get_controller_repository),
) -> AvailabilityLedger:
    return AvailabilityLedger(station_repo, controller_repo)


def get_catalog_service(
    game_repo: GameRepository = Depends(get_game_repository),
    controller_repo: ControllerRepository = Depends(get_controller_repository),
) -> CatalogService:
    return CatalogService(game_repo, controller_repo)


def get_directory_service(session: Session = Depends(get_session)) -> DirectoryService:
    return DirectoryService(UserRepository(session))


def get_discount_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    cache: TTLCache = Depends(get_discount_cache),
    lock=Depends(get_discount_lock),
) -> DiscountService:
    return DiscountService(
        session,
        DiscountRepository(session),
        session_discount_type=settings.session_discount_type,
        cache=cache,
        lock=lock,
    )


def get_session_manager(
    session: Session = Depends(get_session),
    session_repo: SessionRepository = Depends(get_session_repository),
    station_repo: StationRepository = Depends(get_station_repository),
    ledger: AvailabilityLedger = Depends(get_ledger),
    catalog: CatalogService = Depends(get_catalog_service),
    directory: DirectoryService = Depends(get_directory_service),
    discount_service: DiscountService = Depends(get_discount_service),
    power: PowerSignaller = Depends(get_power_signaller),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SessionLifecycleManager:
    return SessionLifecycleManager(
        session,
        session_repo,
        station_repo,
        ledger,
        catalog,
        directory,
        discount_service,
        power,
        settings,
        clock=clock,
    )


def get_equipment_service(
    session: Session = Depends(get_session),
    station_repo: StationRepository = Depends(get_station_repository),
    controller_repo: ControllerRepository = Depends(get_controller_repository),
    game_repo: GameRepository = Depends(get_game_repository),
    session_repo: SessionRepository = Depends(get_session_repository),
    ledger: AvailabilityLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> EquipmentService:
    return EquipmentService(
        session,
        station_repo,
        controller_repo,
        game_repo,
        session_repo,
        ledger,
        settings,
        clock=clock,
    )
