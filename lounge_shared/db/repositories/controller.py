from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from lounge_shared.db.models import Controller, ControllerStatus


class ControllerRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, controller_id: int) -> Optional[Controller]:
        return self.session.get(Controller, controller_id)

    def refresh(self, controller_id: int) -> Optional[Controller]:
        return self.session.get(Controller, controller_id, populate_existing=True)

    def create_controller(self, controller: Controller) -> Controller:
        self.session.add(controller)
        self.session.flush()
        return controller

    def list_available(self) -> List[Controller]:
        return list(
            self.session.execute(
                select(Controller)
                .where(Controller.status == ControllerStatus.AVAILABLE)
                .order_by(Controller.identifier)
            )
            .scalars()
            .all()
        )

    def list_needing_maintenance(self, threshold: datetime) -> List[Controller]:
        return list(
            self.session.execute(
                select(Controller)
                .where(
                    or_(
                        Controller.last_maintenance.is_(None),
                        Controller.last_maintenance < threshold,
                        Controller.status == ControllerStatus.MAINTENANCE,
                    )
                )
                .order_by(Controller.last_maintenance, Controller.id)
            )
            .scalars()
            .all()
        )

    def compare_and_set_status(
        self, controller_id: int, expected: str, new: str, **values
    ) -> bool:
        result = self.session.execute(
            update(Controller)
            .where(Controller.id == controller_id, Controller.status == expected)
            .values(status=new, **values)
            .execution_options(synchronize_session=False)
        )

        updated = result.rowcount > 0
        if updated:
            logger.debug(f"Controller {controller_id}: {expected} -> {new}")
        return updated

    def count_by_status(self) -> Dict[str, int]:
        rows = self.session.execute(
            select(Controller.status, func.count(Controller.id)).group_by(
                Controller.status
            )
        ).all()
        return {status: count for status, count in rows}

    def delete_controller(self, controller: Controller) -> None:
        self.session.delete(controller)
        self.session.flush()
