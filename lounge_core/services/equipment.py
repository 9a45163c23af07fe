from datetime import datetime, timedelta
from typing import Callable, List

from loguru import logger
from lounge_shared.db.repositories.controller import ControllerRepository
from lounge_shared.db.repositories.game import GameRepository
from lounge_shared.db.repositories.session import SessionRepository
from lounge_shared.db.repositories.station import StationRepository
from sqlalchemy.orm import Session

from lounge_core.config.settings import Settings
from lounge_core.core.exceptions import ConflictException, NotFoundException
from lounge_core.core.utils import require_id, utcnow
from lounge_core.db.database import atomic
from lounge_core.db.models import ControllerStatus, StationStatus
from lounge_core.schemas import (
    AvailabilitySummary,
    ControllerStatusResponse,
    StationStatusResponse,
)
from lounge_core.services.availability import AvailabilityLedger


def _station_status(station) -> StationStatusResponse:
    return StationStatusResponse(
        id=station.id,
        name=station.name,
        status=station.status,
        current_session_id=station.current_session_id,
        last_session_id=station.last_session_id,
    )


def _controller_status(controller) -> ControllerStatusResponse:
    return ControllerStatusResponse(
        id=controller.id,
        identifier=controller.identifier,
        status=controller.status,
        last_maintenance=controller.last_maintenance,
    )


class EquipmentService:
    def __init__(
        self,
        session: Session,
        station_repo: StationRepository,
        controller_repo: ControllerRepository,
        game_repo: GameRepository,
        session_repo: SessionRepository,
        ledger: AvailabilityLedger,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.station_repo = station_repo
        self.controller_repo = controller_repo
        self.game_repo = game_repo
        self.session_repo = session_repo
        self.ledger = ledger
        self.maintenance_threshold = timedelta(days=settings.maintenance_threshold_days)
        self.clock = clock

    def set_station_maintenance(
        self, station_id: int, maintenance: bool
    ) -> StationStatusResponse:
        require_id(station_id, "station_id")

        with atomic(self.session, "set_station_maintenance"):
            self.ledger.set_station_maintenance(station_id, maintenance)
            station = self.station_repo.get_by_id(station_id)

        logger.info(f"Station {station_id} is now {station.status}")
        return _station_status(station)

    def set_controller_maintenance(
        self, controller_id: int, maintenance: bool
    ) -> ControllerStatusResponse:
        require_id(controller_id, "controller_id")

        with atomic(self.session, "set_controller_maintenance"):
            self.ledger.set_controller_maintenance(
                controller_id, maintenance, now=self.clock()
            )
            controller = self.controller_repo.get_by_id(controller_id)

        logger.info(f"Controller {controller_id} is now {controller.status}")
        return _controller_status(controller)

    def delete_station(self, station_id: int) -> None:
        require_id(station_id, "station_id")

        with atomic(self.session, "delete_station"):
            station = self.station_repo.get_by_id(station_id)
            if not station:
                raise NotFoundException("Station", station_id)
            if station.status == StationStatus.OCCUPIED:
                raise ConflictException(f"Station {station_id} has an active session")
            if self.session_repo.has_history_for_station(station_id):
                raise ConflictException(
                    f"Station {station_id} has session history; put it in maintenance instead"
                )
            self.station_repo.delete_station(station)

        logger.info(f"Station {station_id} deleted")

    def delete_game(self, game_id: int) -> None:
        require_id(game_id, "game_id")

        with atomic(self.session, "delete_game"):
            game = self.game_repo.get_by_id(game_id)
            if not game:
                raise NotFoundException("Game", game_id)
            if self.session_repo.has_active_for_game(game_id):
                raise ConflictException(f"Game {game_id} is used by an active session")
            if self.session_repo.has_history_for_game(game_id):
                raise ConflictException(
                    f"Game {game_id} has session history; deactivate it instead"
                )
            self.game_repo.delete_game(game)

        logger.info(f"Game {game_id} deleted")

    def delete_controller(self, controller_id: int) -> None:
        require_id(controller_id, "controller_id")

        with atomic(self.session, "delete_controller"):
            controller = self.controller_repo.get_by_id(controller_id)
            if not controller:
                raise NotFoundException("Controller", controller_id)
            if controller.status == ControllerStatus.IN_USE:
                raise ConflictException(
                    f"Controller {controller_id} is attached to an active session"
                )
            if self.session_repo.has_history_for_controller(controller_id):
                raise ConflictException(
                    f"Controller {controller_id} has session history; "
                    f"put it in maintenance instead"
                )
            self.controller_repo.delete_controller(controller)

        logger.info(f"Controller {controller_id} deleted")

    def list_stations(self) -> List[StationStatusResponse]:
        return [_station_status(s) for s in self.station_repo.list_stations()]

    def list_available_controllers(self) -> List[ControllerStatusResponse]:
        return [_controller_status(c) for c in self.controller_repo.list_available()]

    def controllers_due_for_maintenance(self) -> List[ControllerStatusResponse]:
        threshold = self.clock() - self.maintenance_threshold
        return [
            _controller_status(c)
            for c in self.controller_repo.list_needing_maintenance(threshold)
        ]

    def availability_summary(self) -> AvailabilitySummary:
        stations = {
            StationStatus.AVAILABLE: 0,
            StationStatus.OCCUPIED: 0,
            StationStatus.MAINTENANCE: 0,
        }
        stations.update(self.station_repo.count_by_status())
        controllers = {
            ControllerStatus.AVAILABLE: 0,
            ControllerStatus.IN_USE: 0,
            ControllerStatus.MAINTENANCE: 0,
        }
        controllers.update(self.controller_repo.count_by_status())
        return AvailabilitySummary(stations=stations, controllers=controllers)
