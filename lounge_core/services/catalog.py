from typing import Optional

from lounge_shared.db.repositories.controller import ControllerRepository
from lounge_shared.db.repositories.game import GameRepository
from lounge_shared.db.repositories.user import UserRepository

from lounge_core.core.exceptions import NotFoundException
from lounge_core.schemas import ControllerData, GameData, UserData


class DirectoryService:
    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    def find_user(self, user_id: int) -> Optional[UserData]:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            return None

        return UserData(
            id=user.id, name=user.name, membership_type=user.membership_type
        )

    def get_user(self, user_id: int) -> UserData:
        user = self.find_user(user_id)
        if not user:
            raise NotFoundException("User", user_id)
        return user


class CatalogService:
    def __init__(self, game_repo: GameRepository, controller_repo: ControllerRepository):
        self.game_repo = game_repo
        self.controller_repo = controller_repo

    def find_game(self, game_id: int) -> Optional[GameData]:
        game = self.game_repo.get_by_id(game_id)
        if not game:
            return None

        return GameData(
            id=game.id,
            name=game.name,
            price_per_minute=game.price_per_minute,
            device_types=self.game_repo.get_device_types(game.id),
            is_multiplayer=game.is_multiplayer,
            is_active=game.is_active,
        )

    def get_game(self, game_id: int) -> GameData:
        game = self.find_game(game_id)
        if not game:
            raise NotFoundException("Game", game_id)
        return game

    def get_controller(self, controller_id: int) -> ControllerData:
        controller = self.controller_repo.get_by_id(controller_id)
        if not controller:
            raise NotFoundException("Controller", controller_id)

        return ControllerData(
            id=controller.id,
            name=controller.name,
            identifier=controller.identifier,
            device_type=controller.device_type,
            status=controller.status,
            price_per_minute=controller.price_per_minute,
        )
