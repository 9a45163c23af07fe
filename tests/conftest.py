from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from lounge_shared.db.models import (
    Base,
    Controller,
    DeviceType,
    DiscountConfig,
    DiscountType,
    Game,
    MembershipType,
    Station,
    User,
)
from lounge_shared.db.repositories import (
    ControllerRepository,
    DiscountRepository,
    GameRepository,
    SessionRepository,
    StationRepository,
    UserRepository,
)
from lounge_core.config.settings import Settings
from lounge_core.services.availability import AvailabilityLedger
from lounge_core.services.catalog import CatalogService, DirectoryService
from lounge_core.services.discount import DiscountService, new_discount_cache
from lounge_core.services.equipment import EquipmentService
from lounge_core.services.power import PowerSignaller
from lounge_core.services.session import SessionLifecycleManager

T0 = datetime(2024, 5, 1, 18, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakePowerClient:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def _send(self, action: str, location: str):
        self.calls.append((action, location))
        if self.fail:
            return False, "sidecar unreachable"
        return True, None

    def power_on(self, location: str):
        return self._send("on", location)

    def power_off(self, location: str):
        return self._send("off", location)

    def get_circuit_breaker_stats(self):
        return {"power": {"state": "closed", "fail_counter": 0}}


@pytest.fixture
def engine(tmp_path):
    # file-backed so separate sessions (and TestClient worker threads) share data
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'lounge.db'}",
        future=True,
        # writers queue on the file lock instead of failing fast
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+pysqlite:///:memory:",
        power_control_enabled=False,
        max_controllers_per_session=2,
        require_game=False,
        session_discount_type=DiscountType.DEVICES,
        power_signal_wait_sec=1.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def power_client() -> FakePowerClient:
    return FakePowerClient()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def power_signaller(power_client, executor) -> PowerSignaller:
    return PowerSignaller(power_client, executor, wait_sec=1.0)


@pytest.fixture
def seed(session_factory):
    """Two stations, three controllers, three games, two users, premium discount."""
    with session_factory() as s:
        alice = UserRepository(s).create_user(
            User(name="Alice", phone="+100", membership_type=MembershipType.STANDARD)
        )
        bob = UserRepository(s).create_user(
            User(name="Bob", phone="+200", membership_type=MembershipType.PREMIUM)
        )

        stations = StationRepository(s)
        ps5 = stations.create_station(
            Station(
                name="PS5 #1",
                device_type=DeviceType.PS5,
                location="hall-1",
                price_per_minute=Decimal("9.99"),
            )
        )
        xbox = stations.create_station(
            Station(
                name="Xbox #1",
                device_type=DeviceType.XBOX_SERIES_X,
                location="hall-2",
                price_per_minute=Decimal("1.00"),
            )
        )

        controllers = ControllerRepository(s)
        pad_a = controllers.create_controller(
            Controller(
                name="DualSense A",
                device_type=DeviceType.PS5,
                price_per_minute=Decimal("0.10"),
                identifier="DS-A",
            )
        )
        pad_b = controllers.create_controller(
            Controller(
                name="DualSense B",
                device_type=DeviceType.PS5,
                price_per_minute=Decimal("0.10"),
                identifier="DS-B",
            )
        )
        pad_c = controllers.create_controller(
            Controller(
                name="DualSense C",
                device_type=DeviceType.PS5,
                price_per_minute=Decimal("0.15"),
                identifier="DS-C",
            )
        )

        games = GameRepository(s)
        fifa = games.create_game(
            Game(name="FIFA", price_per_minute=Decimal("0.50"), is_multiplayer=True),
            [DeviceType.PS5, DeviceType.PS4],
        )
        halo = games.create_game(
            Game(name="Halo", price_per_minute=Decimal("0.40")),
            [DeviceType.XBOX_SERIES_X],
        )
        retired = games.create_game(
            Game(name="Retired", price_per_minute=Decimal("0.30"), is_active=False),
            [DeviceType.PS5],
        )

        s.add(
            DiscountConfig(
                membership_type=MembershipType.PREMIUM,
                discount_type=DiscountType.DEVICES,
                discount_rate=Decimal("0.20"),
            )
        )
        s.commit()

        return SimpleNamespace(
            alice=alice.id,
            bob=bob.id,
            ps5=ps5.id,
            xbox=xbox.id,
            pad_a=pad_a.id,
            pad_b=pad_b.id,
            pad_c=pad_c.id,
            fifa=fifa.id,
            halo=halo.id,
            retired=retired.id,
        )


def build_manager(
    session: Session,
    settings: Settings,
    power: PowerSignaller,
    clock,
    cache=None,
) -> SessionLifecycleManager:
    station_repo = StationRepository(session)
    controller_repo = ControllerRepository(session)
    game_repo = GameRepository(session)
    return SessionLifecycleManager(
        session,
        SessionRepository(session),
        station_repo,
        AvailabilityLedger(station_repo, controller_repo),
        CatalogService(game_repo, controller_repo),
        DirectoryService(UserRepository(session)),
        DiscountService(
            session,
            DiscountRepository(session),
            session_discount_type=settings.session_discount_type,
            cache=cache if cache is not None else new_discount_cache(60),
        ),
        power,
        settings,
        clock=clock,
    )


def build_equipment(session: Session, settings: Settings, clock) -> EquipmentService:
    station_repo = StationRepository(session)
    controller_repo = ControllerRepository(session)
    return EquipmentService(
        session,
        station_repo,
        controller_repo,
        GameRepository(session),
        SessionRepository(session),
        AvailabilityLedger(station_repo, controller_repo),
        settings,
        clock=clock,
    )


@pytest.fixture
def manager(db_session, settings, power_signaller, clock) -> SessionLifecycleManager:
    return build_manager(db_session, settings, power_signaller, clock)


@pytest.fixture
def equipment(db_session, settings, clock) -> EquipmentService:
    return build_equipment(db_session, settings, clock)


@pytest.fixture
def discounts(db_session) -> DiscountService:
    return DiscountService(db_session, DiscountRepository(db_session))


def pytest_configure(config):
    config.addinivalue_line("markers", "concurrency: exercises two writers at once")
