from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from loguru import logger
from lounge_shared.db.repositories.session import SessionRepository
from lounge_shared.db.repositories.station import StationRepository
from sqlalchemy.orm import Session

from lounge_core.config.settings import Settings
from lounge_core.core.exceptions import (
    ConflictException,
    LoungeCoreException,
    NotFoundException,
    PersistenceTimeoutException,
    ValidationException,
)
from lounge_core.core.utils import ensure_utc, require_id, utcnow
from lounge_core.db.database import atomic
from lounge_core.db.models import (
    ControllerStatus,
    GameSession,
    MembershipType,
    StationStatus,
)
from lounge_core.monitoring.metrics import MetricsCollector
from lounge_core.schemas import (
    ActiveSessionResponse,
    ControllerSnapshot,
    EndSessionResponse,
    GameData,
    SessionResponse,
)
from lounge_core.services import pricing
from lounge_core.services.availability import AvailabilityLedger
from lounge_core.services.catalog import CatalogService, DirectoryService
from lounge_core.services.discount import DiscountService
from lounge_core.services.power import PowerSignaller

_REJECTION_REASONS = {
    NotFoundException: "not_found",
    ConflictException: "conflict",
    ValidationException: "validation",
    PersistenceTimeoutException: "timeout",
}


class SessionLifecycleManager:
    """Opens, reprices and closes rental sessions on stations.

    Each mutating operation is one unit of work: the session row, the
    attachment rows and the station/controller statuses are written together
    or not at all. The display power signal is sent only after the commit and
    its failure is reported in ``warnings``.
    """

    def __init__(
        self,
        session: Session,
        session_repo: SessionRepository,
        station_repo: StationRepository,
        ledger: AvailabilityLedger,
        catalog: CatalogService,
        directory: DirectoryService,
        discount_service: DiscountService,
        power: PowerSignaller,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.session_repo = session_repo
        self.station_repo = station_repo
        self.ledger = ledger
        self.catalog = catalog
        self.directory = directory
        self.discount_service = discount_service
        self.power = power
        self.max_controllers = settings.max_controllers_per_session
        self.require_game = settings.require_game
        self.clock = clock

    @contextmanager
    def _unit_of_work(self, operation: str):
        try:
            with atomic(self.session, operation):
                yield
        except LoungeCoreException as e:
            reason = _REJECTION_REASONS.get(type(e), "error")
            MetricsCollector.record_rejection(operation, reason)
            logger.warning(f"{operation} rejected ({reason}): {e.message}")
            raise

    # --- start ---

    def start_session(
        self,
        station_id: int,
        user_id: int,
        game_id: Optional[int] = None,
        membership_type: Optional[str] = None,
        controller_ids: Iterable[int] = (),
        created_by: Optional[int] = None,
    ) -> SessionResponse:
        controller_ids = list(controller_ids)
        self._validate_start(
            station_id, user_id, game_id, membership_type, controller_ids, created_by
        )

        logger.info(
            f"Starting session on station {station_id} for user {user_id}, "
            f"game={game_id}, controllers={controller_ids}"
        )

        with self._unit_of_work("start_session"):
            station = self.station_repo.refresh(station_id)
            if not station:
                raise NotFoundException("Station", station_id)
            if station.status != StationStatus.AVAILABLE:
                raise ConflictException(
                    f"Station {station_id} is {station.status}, not available"
                )

            user = self.directory.get_user(user_id)
            game = self._resolve_game(game_id, station.device_type)

            if len(controller_ids) > self.max_controllers:
                raise ConflictException(
                    f"At most {self.max_controllers} controllers per session, "
                    f"got {len(controller_ids)}"
                )
            controllers = [self.catalog.get_controller(cid) for cid in controller_ids]
            for controller in controllers:
                if controller.status != ControllerStatus.AVAILABLE:
                    raise ConflictException(
                        f"Controller {controller.id} is {controller.status}, not available"
                    )

            membership = membership_type or user.membership_type
            base_price = pricing.compute_base_price(
                game.price_per_minute if game else None,
                [c.price_per_minute for c in controllers],
            )
            discount_rate = self.discount_service.rate_for(membership)
            final_price = pricing.compute_final_price(base_price, discount_rate)

            now = self.clock()
            game_session = GameSession(
                station_id=station_id,
                user_id=user_id,
                membership_type=membership,
                game_id=game_id,
                created_by=created_by,
                start_time=now,
                end_time=None,
                base_price=pricing.to_money(base_price),
                discount_rate=discount_rate,
                final_price=pricing.to_money(final_price),
                total_amount=None,
            )
            self.session_repo.create_session(game_session)

            self.ledger.reserve(station_id, game_session.id)
            for controller in controllers:
                self.ledger.reserve_controller(controller.id)
                self.session_repo.add_attachment(game_session.id, controller.id, now)

        MetricsCollector.record_session_started()
        logger.info(
            f"Session {game_session.id} started on station {station_id}: "
            f"base={game_session.base_price}, discount={discount_rate}, "
            f"final={game_session.final_price}"
        )

        warnings = self._warnings(self.power.power_on(station.location))
        return self._to_response(game_session, warnings)

    def _validate_start(
        self, station_id, user_id, game_id, membership_type, controller_ids, created_by
    ) -> None:
        require_id(station_id, "station_id")
        require_id(user_id, "user_id")
        if game_id is not None:
            require_id(game_id, "game_id")
        elif self.require_game:
            raise ValidationException("A game is required to start a session")
        if created_by is not None:
            require_id(created_by, "created_by")
        for controller_id in controller_ids:
            require_id(controller_id, "controller_id")
        if len(set(controller_ids)) != len(controller_ids):
            raise ValidationException(f"Duplicate controller ids: {controller_ids}")
        if membership_type is not None and membership_type not in MembershipType.ALL:
            raise ValidationException(f"Unknown membership type '{membership_type}'")

    def _resolve_game(self, game_id: Optional[int], device_type: str) -> Optional[GameData]:
        if game_id is None:
            return None

        game = self.catalog.get_game(game_id)
        if not game.is_active:
            raise ConflictException(f"Game {game_id} is not active")
        if device_type not in game.device_types:
            raise ConflictException(
                f"Game {game_id} does not support device type {device_type}"
            )
        return game

    # --- controllers ---

    def attach_controller(self, session_id: int, controller_id: int) -> SessionResponse:
        require_id(session_id, "session_id")
        require_id(controller_id, "controller_id")

        with self._unit_of_work("attach_controller"):
            game_session = self._get_open_session(session_id)
            controller = self.catalog.get_controller(controller_id)

            if self.session_repo.is_attached(session_id, controller_id):
                raise ConflictException(
                    f"Controller {controller_id} is already attached to session {session_id}"
                )
            if self.session_repo.count_attachments(session_id) >= self.max_controllers:
                raise ConflictException(
                    f"Session {session_id} already has {self.max_controllers} controllers"
                )
            if controller.status != ControllerStatus.AVAILABLE:
                raise ConflictException(
                    f"Controller {controller_id} is {controller.status}, not available"
                )

            self.ledger.reserve_controller(controller_id)
            self.session_repo.add_attachment(session_id, controller_id, self.clock())
            game_session = self._recompute_prices(game_session)

        MetricsCollector.record_controller_operation("attach")
        logger.info(
            f"Controller {controller_id} attached to session {session_id}, "
            f"final_price={game_session.final_price}"
        )
        return self._to_response(game_session)

    def detach_controller(self, session_id: int, controller_id: int) -> SessionResponse:
        require_id(session_id, "session_id")
        require_id(controller_id, "controller_id")

        with self._unit_of_work("detach_controller"):
            game_session = self._get_open_session(session_id)
            self.catalog.get_controller(controller_id)

            if not self.session_repo.remove_attachment(session_id, controller_id):
                raise ConflictException(
                    f"Controller {controller_id} is not attached to session {session_id}"
                )
            self.ledger.release_controller(controller_id)
            game_session = self._recompute_prices(game_session)

        MetricsCollector.record_controller_operation("detach")
        logger.info(
            f"Controller {controller_id} detached from session {session_id}, "
            f"final_price={game_session.final_price}"
        )
        return self._to_response(game_session)

    def _get_open_session(self, session_id: int) -> GameSession:
        game_session = self.session_repo.refresh(session_id)
        if not game_session:
            raise NotFoundException("Session", session_id)
        if game_session.end_time is not None:
            raise ConflictException(f"Session {session_id} is already closed")
        return game_session

    def _recompute_prices(self, game_session: GameSession) -> GameSession:
        game_rate = None
        if game_session.game_id is not None:
            game_rate = self.catalog.get_game(game_session.game_id).price_per_minute

        controllers = self.session_repo.get_attached_controllers(game_session.id)
        base_price = pricing.compute_base_price(
            game_rate, [c.price_per_minute for c in controllers]
        )
        final_price = pricing.compute_final_price(base_price, game_session.discount_rate)

        if not self.session_repo.update_prices(
            game_session.id, pricing.to_money(base_price), pricing.to_money(final_price)
        ):
            raise ConflictException(f"Session {game_session.id} is already closed")
        return self.session_repo.refresh(game_session.id)

    # --- end ---

    def end_session(self, station_id: int) -> EndSessionResponse:
        require_id(station_id, "station_id")

        game_session = None
        with self._unit_of_work("end_session"):
            station = self.station_repo.refresh(station_id)
            if not station:
                raise NotFoundException("Station", station_id)

            game_session = self._find_open_session(station.current_session_id, station_id)
            if game_session is not None:
                end_time = self.clock()
                total_amount = pricing.compute_total_amount(
                    game_session.start_time, end_time, game_session.final_price
                )
                if not self.session_repo.close_session(
                    game_session.id, end_time, total_amount
                ):
                    raise ConflictException(
                        f"Session {game_session.id} was closed concurrently"
                    )

                self.ledger.release(station_id, game_session.id)
                for controller in self.session_repo.get_attached_controllers(
                    game_session.id
                ):
                    self.ledger.release_controller(controller.id)
                game_session = self.session_repo.refresh(game_session.id)

        if game_session is None:
            logger.info(f"Station {station_id} has no active session, nothing to end")
            return EndSessionResponse(station_id=station_id, ended=False)

        duration = (
            ensure_utc(game_session.end_time) - ensure_utc(game_session.start_time)
        ).total_seconds()
        MetricsCollector.record_session_ended(duration, float(game_session.total_amount))
        logger.info(
            f"Session {game_session.id} ended on station {station_id}: "
            f"total_amount={game_session.total_amount}"
        )

        warnings = self._warnings(self.power.power_off(station.location))
        return EndSessionResponse(
            station_id=station_id,
            ended=True,
            session=self._to_response(game_session),
            warnings=warnings,
        )

    def _find_open_session(
        self, current_session_id: Optional[int], station_id: int
    ) -> Optional[GameSession]:
        if current_session_id is not None:
            game_session = self.session_repo.refresh(current_session_id)
            if game_session and game_session.end_time is None:
                return game_session
        return self.session_repo.get_active_for_station(station_id)

    # --- reads ---

    def get_active_session(self, station_id: int) -> Optional[ActiveSessionResponse]:
        require_id(station_id, "station_id")

        if not self.station_repo.get_by_id(station_id):
            return None
        game_session = self.session_repo.get_active_for_station(station_id)
        if not game_session:
            return None
        return self._to_active_response(game_session, self.clock())

    def list_active_sessions(self) -> List[ActiveSessionResponse]:
        now = self.clock()
        return [
            self._to_active_response(game_session, now)
            for game_session in self.session_repo.list_active()
        ]

    def list_user_sessions(self, user_id: int) -> List[SessionResponse]:
        require_id(user_id, "user_id")
        self.directory.get_user(user_id)
        return [self._to_response(s) for s in self.session_repo.list_for_user(user_id)]

    # --- rendering ---

    @staticmethod
    def _warnings(*messages: Optional[str]) -> List[str]:
        return [message for message in messages if message]

    def _to_active_response(
        self, game_session: GameSession, as_of: datetime
    ) -> ActiveSessionResponse:
        elapsed = pricing.elapsed_minutes(game_session.start_time, as_of)
        cost = pricing.compute_elapsed_cost(
            game_session.start_time, as_of, game_session.final_price
        )
        return ActiveSessionResponse(
            **self._to_response(game_session).model_dump(),
            elapsed_minutes=elapsed.quantize(Decimal("0.01")),
            current_cost=pricing.to_money(cost),
        )

    def _to_response(
        self, game_session: GameSession, warnings: Optional[List[str]] = None
    ) -> SessionResponse:
        station = self.station_repo.get_by_id(game_session.station_id)
        user = self.directory.find_user(game_session.user_id)
        game = (
            self.catalog.find_game(game_session.game_id)
            if game_session.game_id is not None
            else None
        )
        controllers = self.session_repo.get_attached_controllers(game_session.id)

        return SessionResponse(
            id=game_session.id,
            station_id=game_session.station_id,
            station_name=station.name if station else None,
            device_type=station.device_type if station else None,
            user_id=game_session.user_id,
            user_name=user.name if user else None,
            membership_type=game_session.membership_type,
            game_id=game_session.game_id,
            game_name=game.name if game else None,
            created_by=game_session.created_by,
            start_time=game_session.start_time,
            end_time=game_session.end_time,
            base_price=game_session.base_price,
            discount_rate=game_session.discount_rate,
            final_price=game_session.final_price,
            total_amount=game_session.total_amount,
            controllers=[
                ControllerSnapshot(
                    id=c.id,
                    name=c.name,
                    identifier=c.identifier,
                    device_type=c.device_type,
                    price_per_minute=c.price_per_minute,
                )
                for c in controllers
            ],
            warnings=warnings or [],
        )
