from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    station_id: int
    user_id: int
    game_id: Optional[int] = None
    membership_type: Optional[str] = Field(
        None, description="Overrides the membership looked up in the directory"
    )
    controller_ids: List[int] = Field(default_factory=list)
    created_by: Optional[int] = None


class AttachControllerRequest(BaseModel):
    controller_id: int


class MaintenanceRequest(BaseModel):
    maintenance: bool


class ControllerSnapshot(BaseModel):
    id: int
    name: str
    identifier: str
    device_type: str
    price_per_minute: Decimal


class SessionResponse(BaseModel):
    id: int
    station_id: int
    station_name: Optional[str] = None
    device_type: Optional[str] = None
    user_id: int
    user_name: Optional[str] = None
    membership_type: str
    game_id: Optional[int] = None
    game_name: Optional[str] = None
    created_by: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    base_price: Decimal
    discount_rate: Decimal
    final_price: Decimal
    total_amount: Optional[Decimal] = None
    controllers: List[ControllerSnapshot] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ActiveSessionResponse(SessionResponse):
    elapsed_minutes: Decimal
    current_cost: Decimal = Field(..., description="Live cost, not persisted")


class EndSessionResponse(BaseModel):
    station_id: int
    ended: bool
    session: Optional[SessionResponse] = None
    warnings: List[str] = Field(default_factory=list)


class DiscountConfigRequest(BaseModel):
    membership_type: str
    discount_type: str
    discount_rate: Decimal


class DiscountRateUpdate(BaseModel):
    discount_rate: Decimal


class DiscountConfigResponse(BaseModel):
    membership_type: str
    discount_type: str
    discount_rate: Decimal


class DiscountCalculation(BaseModel):
    original_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    final_amount: Decimal


class StationStatusResponse(BaseModel):
    id: int
    name: str
    status: str
    current_session_id: Optional[int] = None
    last_session_id: Optional[int] = None


class ControllerStatusResponse(BaseModel):
    id: int
    identifier: str
    status: str
    last_maintenance: Optional[datetime] = None


class AvailabilitySummary(BaseModel):
    stations: Dict[str, int]
    controllers: Dict[str, int]


class HealthResponse(BaseModel):
    ok: bool = True


# Internal schemas for services
class UserData(BaseModel):
    id: int
    name: str
    membership_type: str


class GameData(BaseModel):
    id: int
    name: str
    price_per_minute: Decimal
    device_types: List[str]
    is_multiplayer: bool = False
    is_active: bool = True


class ControllerData(BaseModel):
    id: int
    name: str
    identifier: str
    device_type: str
    status: str
    price_per_minute: Decimal
