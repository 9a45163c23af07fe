from .controller import ControllerRepository
from .discount import DiscountRepository
from .game import GameRepository
from .session import SessionRepository
from .station import StationRepository
from .user import UserRepository

__all__ = [
    "StationRepository",
    "ControllerRepository",
    "GameRepository",
    "SessionRepository",
    "DiscountRepository",
    "UserRepository",
]
