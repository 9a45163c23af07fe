from datetime import datetime
from typing import Optional

from loguru import logger
from lounge_shared.db.repositories.controller import ControllerRepository
from lounge_shared.db.repositories.station import StationRepository

from lounge_core.core.exceptions import ConflictException, NotFoundException
from lounge_core.core.utils import utcnow
from lounge_core.db.models import ControllerStatus, StationStatus


class AvailabilityLedger:
    """Station and controller availability, changed only by compare-and-set.

    Every transition names the status it expects to find. If another writer
    got there first the conditional update matches no row and the transition
    fails with ConflictException instead of double-booking.
    """

    def __init__(
        self, station_repo: StationRepository, controller_repo: ControllerRepository
    ):
        self.station_repo = station_repo
        self.controller_repo = controller_repo

    # --- stations ---

    def reserve(self, station_id: int, session_id: int) -> None:
        if not self.station_repo.compare_and_set_status(
            station_id,
            StationStatus.AVAILABLE,
            StationStatus.OCCUPIED,
            current_session_id=session_id,
        ):
            self._station_conflict(station_id, "reserve", StationStatus.AVAILABLE)
        self.station_repo.refresh(station_id)

    def release(self, station_id: int, session_id: Optional[int] = None) -> None:
        if not self.station_repo.compare_and_set_status(
            station_id,
            StationStatus.OCCUPIED,
            StationStatus.AVAILABLE,
            current_session_id=None,
            last_session_id=session_id,
        ):
            self._station_conflict(station_id, "release", StationStatus.OCCUPIED)
        self.station_repo.refresh(station_id)

    def set_station_maintenance(self, station_id: int, maintenance: bool) -> None:
        expected, new = (
            (StationStatus.AVAILABLE, StationStatus.MAINTENANCE)
            if maintenance
            else (StationStatus.MAINTENANCE, StationStatus.AVAILABLE)
        )
        if not self.station_repo.compare_and_set_status(station_id, expected, new):
            station = self.station_repo.refresh(station_id)
            if not station:
                raise NotFoundException("Station", station_id)
            if station.status == new:
                return
            self._station_conflict(station_id, f"set {new}", expected)
        self.station_repo.refresh(station_id)

    def _station_conflict(self, station_id: int, action: str, expected: str):
        station = self.station_repo.refresh(station_id)
        if not station:
            raise NotFoundException("Station", station_id)

        logger.warning(
            f"Cannot {action} station {station_id}: expected {expected}, found {station.status}"
        )
        raise ConflictException(
            f"Station {station_id} is {station.status}, expected {expected}"
        )

    # --- controllers ---

    def reserve_controller(self, controller_id: int) -> None:
        if not self.controller_repo.compare_and_set_status(
            controller_id, ControllerStatus.AVAILABLE, ControllerStatus.IN_USE
        ):
            self._controller_conflict(controller_id, "reserve", ControllerStatus.AVAILABLE)
        self.controller_repo.refresh(controller_id)

    def release_controller(self, controller_id: int) -> None:
        if not self.controller_repo.compare_and_set_status(
            controller_id, ControllerStatus.IN_USE, ControllerStatus.AVAILABLE
        ):
            self._controller_conflict(controller_id, "release", ControllerStatus.IN_USE)
        self.controller_repo.refresh(controller_id)

    def set_controller_maintenance(
        self, controller_id: int, maintenance: bool, now: Optional[datetime] = None
    ) -> None:
        if maintenance:
            expected, new = ControllerStatus.AVAILABLE, ControllerStatus.MAINTENANCE
            values = {"last_maintenance": now or utcnow()}
        else:
            expected, new = ControllerStatus.MAINTENANCE, ControllerStatus.AVAILABLE
            values = {}

        if not self.controller_repo.compare_and_set_status(
            controller_id, expected, new, **values
        ):
            controller = self.controller_repo.refresh(controller_id)
            if not controller:
                raise NotFoundException("Controller", controller_id)
            if controller.status == new:
                return
            self._controller_conflict(controller_id, f"set {new}", expected)
        self.controller_repo.refresh(controller_id)

    def _controller_conflict(self, controller_id: int, action: str, expected: str):
        controller = self.controller_repo.refresh(controller_id)
        if not controller:
            raise NotFoundException("Controller", controller_id)

        logger.warning(
            f"Cannot {action} controller {controller_id}: "
            f"expected {expected}, found {controller.status}"
        )
        raise ConflictException(
            f"Controller {controller_id} is {controller.status}, expected {expected}"
        )
