from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StationStatus:
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class ControllerStatus:
    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"


class DeviceType:
    PS5 = "PS5"
    PS4 = "PS4"
    XBOX_SERIES_X = "Xbox Series X"
    XBOX_ONE = "Xbox One"
    NINTENDO_SWITCH = "Nintendo Switch"

    ALL = (PS5, PS4, XBOX_SERIES_X, XBOX_ONE, NINTENDO_SWITCH)


class MembershipType:
    STANDARD = "standard"
    PREMIUM = "premium"

    ALL = (STANDARD, PREMIUM)


class DiscountType:
    DEVICES = "devices"
    GAMES = "games"
    CONTROLLERS = "controllers"
    PRODUCTS = "products"

    ALL = (DEVICES, GAMES, CONTROLLERS, PRODUCTS)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128))
    phone: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(String(16), default="customer")
    membership_type: Mapped[str] = mapped_column(
        String(16), default=MembershipType.STANDARD
    )  # standard / premium
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


class Station(Base):
    __tablename__ = "stations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128))
    device_type: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(
        String(16), default=StationStatus.AVAILABLE
    )  # available / occupied / maintenance
    location: Mapped[str] = mapped_column(String(128))
    price_per_minute: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    current_session_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_session_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Controller(Base):
    __tablename__ = "controllers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128))
    device_type: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(
        String(16), default=ControllerStatus.AVAILABLE
    )  # available / in_use / maintenance
    price_per_minute: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    identifier: Mapped[str] = mapped_column(String(64), unique=True)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_maintenance: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128))
    price_per_minute: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    image: Mapped[str] = mapped_column(String(256), default="")
    is_multiplayer: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )


class GameDeviceCompatibility(Base):
    __tablename__ = "game_device_compatibility"

    game_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    device_type: Mapped[str] = mapped_column(String(32), primary_key=True)


class GameSession(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    station_id: Mapped[int] = mapped_column(Integer)
    user_id: Mapped[int] = mapped_column(Integer)
    membership_type: Mapped[str] = mapped_column(String(16))
    game_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4))
    final_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    total_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )


Index("ix_sessions_station_id_end_time", GameSession.station_id, GameSession.end_time)
Index("ix_sessions_user_id", GameSession.user_id)


class SessionController(Base):
    __tablename__ = "session_controllers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(Integer, index=True)
    controller_id: Mapped[int] = mapped_column(Integer, index=True)
    attached_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("session_id", "controller_id", name="uq_session_controller"),
    )


class DiscountConfig(Base):
    __tablename__ = "discount_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    membership_type: Mapped[str] = mapped_column(String(16))
    discount_type: Mapped[str] = mapped_column(String(16))
    discount_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "membership_type", "discount_type", name="uq_discount_membership_type"
        ),
    )
