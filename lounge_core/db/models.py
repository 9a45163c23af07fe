from lounge_shared.db.models import (
    Base,
    Controller,
    ControllerStatus,
    DeviceType,
    DiscountConfig,
    DiscountType,
    Game,
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
    "GameSession",
    "SessionController",
    "DiscountConfig",
    "StationStatus",
    "ControllerStatus",
    "DeviceType",
    "MembershipType",
    "DiscountType",
]
