from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from lounge_shared.db.models import Game, GameDeviceCompatibility


class GameRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, game_id: int) -> Optional[Game]:
        return self.session.get(Game, game_id)

    def create_game(self, game: Game, device_types: Iterable[str] = ()) -> Game:
        self.session.add(game)
        self.session.flush()
        self.set_device_types(game.id, device_types)
        return game

    def get_device_types(self, game_id: int) -> List[str]:
        return list(
            self.session.execute(
                select(GameDeviceCompatibility.device_type)
                .where(GameDeviceCompatibility.game_id == game_id)
                .order_by(GameDeviceCompatibility.device_type)
            )
            .scalars()
            .all()
        )

    def set_device_types(self, game_id: int, device_types: Iterable[str]) -> None:
        self.session.execute(
            delete(GameDeviceCompatibility).where(
                GameDeviceCompatibility.game_id == game_id
            )
        )
        for device_type in dict.fromkeys(device_types):
            self.session.add(
                GameDeviceCompatibility(game_id=game_id, device_type=device_type)
            )
        self.session.flush()

    def delete_game(self, game: Game) -> None:
        self.session.execute(
            delete(GameDeviceCompatibility).where(
                GameDeviceCompatibility.game_id == game.id
            )
        )
        self.session.delete(game)
        self.session.flush()
