from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from lounge_shared.db.models import DiscountConfig


class DiscountRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_config(
        self, membership_type: str, discount_type: str
    ) -> Optional[DiscountConfig]:
        return self.session.execute(
            select(DiscountConfig).where(
                DiscountConfig.membership_type == membership_type,
                DiscountConfig.discount_type == discount_type,
            )
        ).scalar_one_or_none()

    def list_configs(self) -> List[DiscountConfig]:
        return list(
            self.session.execute(
                select(DiscountConfig).order_by(
                    DiscountConfig.membership_type, DiscountConfig.discount_type
                )
            )
            .scalars()
            .all()
        )

    def list_for_discount_type(self, discount_type: str) -> List[DiscountConfig]:
        return list(
            self.session.execute(
                select(DiscountConfig).where(
                    DiscountConfig.discount_type == discount_type
                )
            )
            .scalars()
            .all()
        )

    def create_config(
        self, membership_type: str, discount_type: str, discount_rate: Decimal
    ) -> DiscountConfig:
        config = DiscountConfig(
            membership_type=membership_type,
            discount_type=discount_type,
            discount_rate=discount_rate,
        )
        self.session.add(config)
        self.session.flush()
        return config

    def delete_config(self, config: DiscountConfig) -> None:
        self.session.delete(config)
        self.session.flush()
