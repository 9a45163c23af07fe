from .database import get_engine, get_sessionmaker
from .models import (
    Base,
    Controller,
    ControllerStatus,
    DeviceType,
    DiscountConfig,
    DiscountType,
    Game,
    GameDeviceCompatibility,
    GameSession,
    MembershipType,
    SessionController,
    Station,
    StationStatus,
    User,
)

__all__ = [
    "Base",
    "User",
    "Station",
    "Controller",
    "Game",
    "GameDeviceCompatibility",
    "GameSession",
    "SessionController",
    "DiscountConfig",
    "StationStatus",
    "ControllerStatus",
    "DeviceType",
    "MembershipType",
    "DiscountType",
    "get_sessionmaker",
    "get_engine",
]
