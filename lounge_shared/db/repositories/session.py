from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.orm import Session

from lounge_shared.db.models import Controller, GameSession, SessionController


class SessionRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, session_id: int) -> Optional[GameSession]:
        return self.session.get(GameSession, session_id)

    def refresh(self, session_id: int) -> Optional[GameSession]:
        return self.session.get(GameSession, session_id, populate_existing=True)

    def create_session(self, game_session: GameSession) -> GameSession:
        self.session.add(game_session)
        self.session.flush()
        return game_session

    def get_active_for_station(self, station_id: int) -> Optional[GameSession]:
        return self.session.execute(
            select(GameSession)
            .where(GameSession.station_id == station_id, GameSession.end_time.is_(None))
            .order_by(GameSession.start_time.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_active(self) -> List[GameSession]:
        return list(
            self.session.execute(
                select(GameSession)
                .where(GameSession.end_time.is_(None))
                .order_by(GameSession.start_time)
            )
            .scalars()
            .all()
        )

    def list_for_user(self, user_id: int) -> List[GameSession]:
        return list(
            self.session.execute(
                select(GameSession)
                .where(GameSession.user_id == user_id)
                .order_by(GameSession.start_time.desc(), GameSession.id.desc())
            )
            .scalars()
            .all()
        )

    # --- attachment set ---

    def get_attached_controllers(self, session_id: int) -> List[Controller]:
        return list(
            self.session.execute(
                select(Controller)
                .join(SessionController, SessionController.controller_id == Controller.id)
                .where(SessionController.session_id == session_id)
                .order_by(SessionController.attached_at, SessionController.id)
            )
            .scalars()
            .all()
        )

    def count_attachments(self, session_id: int) -> int:
        return self.session.execute(
            select(func.count(SessionController.id)).where(
                SessionController.session_id == session_id
            )
        ).scalar_one()

    def is_attached(self, session_id: int, controller_id: int) -> bool:
        return self.session.execute(
            select(
                exists().where(
                    SessionController.session_id == session_id,
                    SessionController.controller_id == controller_id,
                )
            )
        ).scalar_one()

    def add_attachment(
        self, session_id: int, controller_id: int, attached_at: datetime
    ) -> None:
        self.session.add(
            SessionController(
                session_id=session_id,
                controller_id=controller_id,
                attached_at=attached_at,
            )
        )
        self.session.flush()

    def remove_attachment(self, session_id: int, controller_id: int) -> bool:
        result = self.session.execute(
            delete(SessionController).where(
                SessionController.session_id == session_id,
                SessionController.controller_id == controller_id,
            )
        )
        return result.rowcount > 0

    # --- pricing / close ---

    def update_prices(
        self, session_id: int, base_price: Decimal, final_price: Decimal
    ) -> bool:
        result = self.session.execute(
            update(GameSession)
            .where(GameSession.id == session_id, GameSession.end_time.is_(None))
            .values(base_price=base_price, final_price=final_price)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def close_session(
        self, session_id: int, end_time: datetime, total_amount: Decimal
    ) -> bool:
        result = self.session.execute(
            update(GameSession)
            .where(GameSession.id == session_id, GameSession.end_time.is_(None))
            .values(end_time=end_time, total_amount=total_amount)
            .execution_options(synchronize_session=False)
        )

        closed = result.rowcount > 0
        if closed:
            logger.info(f"Closed session {session_id}, total_amount={total_amount}")
        return closed

    # --- reference checks ---

    def has_active_for_game(self, game_id: int) -> bool:
        return self.session.execute(
            select(
                exists().where(
                    GameSession.game_id == game_id, GameSession.end_time.is_(None)
                )
            )
        ).scalar_one()

    def has_history_for_station(self, station_id: int) -> bool:
        return self.session.execute(
            select(exists().where(GameSession.station_id == station_id))
        ).scalar_one()

    def has_history_for_game(self, game_id: int) -> bool:
        return self.session.execute(
            select(exists().where(GameSession.game_id == game_id))
        ).scalar_one()

    def has_history_for_controller(self, controller_id: int) -> bool:
        return self.session.execute(
            select(exists().where(SessionController.controller_id == controller_id))
        ).scalar_one()
