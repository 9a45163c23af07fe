from decimal import Decimal, InvalidOperation
from threading import RLock
from typing import Dict, List, Optional, Tuple

from cachetools import TTLCache
from loguru import logger
from lounge_shared.db.repositories.discount import DiscountRepository
from sqlalchemy.orm import Session

from lounge_core.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from lounge_core.db.database import atomic
from lounge_core.db.models import DiscountType, MembershipType
from lounge_core.schemas import DiscountCalculation, DiscountConfigResponse
from lounge_core.services import pricing


def new_discount_cache(ttl_sec: int) -> TTLCache:
    return TTLCache(maxsize=64, ttl=ttl_sec)


class DiscountService:
    def __init__(
        self,
        session: Session,
        discount_repo: DiscountRepository,
        session_discount_type: str = DiscountType.DEVICES,
        cache: Optional[TTLCache] = None,
        lock=None,
    ):
        self.session = session
        self.discount_repo = discount_repo
        self.session_discount_type = session_discount_type
        self._cache = cache if cache is not None else new_discount_cache(60)
        # the cache is shared by request threads; TTLCache itself is not thread-safe
        self._lock = lock if lock is not None else RLock()

    @staticmethod
    def _validate(membership_type: str, discount_type: str, rate) -> Decimal:
        if membership_type not in MembershipType.ALL:
            raise ValidationException(f"Unknown membership type '{membership_type}'")
        if discount_type not in DiscountType.ALL:
            raise ValidationException(f"Unknown discount type '{discount_type}'")
        try:
            rate = Decimal(str(rate))
        except InvalidOperation as e:
            raise ValidationException(f"Discount rate is not a number: {rate!r}") from e
        if not rate.is_finite() or not Decimal("0") <= rate <= Decimal("1"):
            raise ValidationException(
                f"Discount rate must be between 0 and 1, got {rate}"
            )
        return rate

    def _invalidate(self) -> None:
        with self._lock:
            self._cache.clear()

    def list_configs(self) -> List[DiscountConfigResponse]:
        return [
            DiscountConfigResponse(
                membership_type=c.membership_type,
                discount_type=c.discount_type,
                discount_rate=c.discount_rate,
            )
            for c in self.discount_repo.list_configs()
        ]

    def get_config_map(self) -> Dict[Tuple[str, str], Decimal]:
        return {
            (c.membership_type, c.discount_type): c.discount_rate
            for c in self.discount_repo.list_configs()
        }

    def rate_for(self, membership_type: str) -> Decimal:
        """Session discount rate for a membership tier, cached for discount_ttl_sec."""
        key = (membership_type, self.session_discount_type)
        # single lookup: TTLCache.get checks expiry twice and can raise at the boundary
        with self._lock:
            try:
                return self._cache[key]
            except KeyError:
                pass

        config = {
            (c.membership_type, c.discount_type): c.discount_rate
            for c in self.discount_repo.list_for_discount_type(self.session_discount_type)
        }
        rate = pricing.discount_rate_for(
            membership_type, config, self.session_discount_type
        )
        with self._lock:
            self._cache[key] = rate
        return rate

    def create(
        self, membership_type: str, discount_type: str, discount_rate
    ) -> DiscountConfigResponse:
        rate = self._validate(membership_type, discount_type, discount_rate)

        with atomic(self.session, "create_discount"):
            if self.discount_repo.get_config(membership_type, discount_type):
                raise ConflictException(
                    f"Discount for {membership_type}/{discount_type} already exists"
                )
            self.discount_repo.create_config(membership_type, discount_type, rate)
        self._invalidate()

        logger.info(f"Discount {membership_type}/{discount_type} created: {rate}")
        return DiscountConfigResponse(
            membership_type=membership_type,
            discount_type=discount_type,
            discount_rate=rate,
        )

    def update(
        self, membership_type: str, discount_type: str, discount_rate
    ) -> DiscountConfigResponse:
        rate = self._validate(membership_type, discount_type, discount_rate)

        with atomic(self.session, "update_discount"):
            config = self.discount_repo.get_config(membership_type, discount_type)
            if not config:
                raise NotFoundException(
                    "Discount config", f"{membership_type}/{discount_type}"
                )
            config.discount_rate = rate
            self.session.flush()
        self._invalidate()

        logger.info(f"Discount {membership_type}/{discount_type} updated: {rate}")
        return DiscountConfigResponse(
            membership_type=membership_type,
            discount_type=discount_type,
            discount_rate=rate,
        )

    def upsert_many(
        self, configs: List[Tuple[str, str, Decimal]]
    ) -> List[DiscountConfigResponse]:
        validated = [
            (membership_type, discount_type, self._validate(membership_type, discount_type, rate))
            for membership_type, discount_type, rate in configs
        ]

        with atomic(self.session, "bulk_update_discounts"):
            for membership_type, discount_type, rate in validated:
                config = self.discount_repo.get_config(membership_type, discount_type)
                if config:
                    config.discount_rate = rate
                else:
                    self.discount_repo.create_config(membership_type, discount_type, rate)
            self.session.flush()
        self._invalidate()

        logger.info(f"Bulk discount update applied: {len(validated)} configs")
        return [
            DiscountConfigResponse(
                membership_type=m, discount_type=d, discount_rate=r
            )
            for m, d, r in validated
        ]

    def delete(self, membership_type: str, discount_type: str) -> None:
        with atomic(self.session, "delete_discount"):
            config = self.discount_repo.get_config(membership_type, discount_type)
            if not config:
                raise NotFoundException(
                    "Discount config", f"{membership_type}/{discount_type}"
                )
            self.discount_repo.delete_config(config)
        self._invalidate()
        logger.info(f"Discount {membership_type}/{discount_type} deleted")

    def calculate_discount(
        self, membership_type: str, discount_type: str, amount
    ) -> DiscountCalculation:
        config = self.discount_repo.get_config(membership_type, discount_type)
        rate = pricing.clamp_rate(config.discount_rate) if config else Decimal("0")
        original = pricing.to_money(amount)
        discount_amount = pricing.to_money(original * rate)

        return DiscountCalculation(
            original_amount=original,
            discount_rate=rate,
            discount_amount=discount_amount,
            final_amount=original - discount_amount,
        )
