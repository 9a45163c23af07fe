from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from lounge_shared.db.models import Station


class StationRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, station_id: int) -> Optional[Station]:
        return self.session.get(Station, station_id)

    def refresh(self, station_id: int) -> Optional[Station]:
        return self.session.get(Station, station_id, populate_existing=True)

    def create_station(self, station: Station) -> Station:
        self.session.add(station)
        self.session.flush()
        return station

    def list_stations(self) -> List[Station]:
        return list(
            self.session.execute(select(Station).order_by(Station.id)).scalars().all()
        )

    def compare_and_set_status(
        self, station_id: int, expected: str, new: str, **values
    ) -> bool:
        result = self.session.execute(
            update(Station)
            .where(Station.id == station_id, Station.status == expected)
            .values(status=new, **values)
            .execution_options(synchronize_session=False)
        )

        updated = result.rowcount > 0
        if updated:
            logger.debug(f"Station {station_id}: {expected} -> {new}")
        return updated

    def count_by_status(self) -> Dict[str, int]:
        rows = self.session.execute(
            select(Station.status, func.count(Station.id)).group_by(Station.status)
        ).all()
        return {status: count for status, count in rows}

    def delete_station(self, station: Station) -> None:
        self.session.delete(station)
        self.session.flush()
