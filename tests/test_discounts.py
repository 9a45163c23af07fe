from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import RLock

import pytest
from cachetools import TTLCache

from lounge_shared.db.repositories import DiscountRepository
from lounge_core.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from lounge_core.services.discount import DiscountService, new_discount_cache


def test_rate_for_uses_session_discount_type(seed, discounts):
    assert discounts.rate_for("premium") == Decimal("0.20")
    assert discounts.rate_for("standard") == Decimal("0")


def test_rate_for_other_discount_type(db_session, seed):
    games_only = DiscountService(
        db_session, DiscountRepository(db_session), session_discount_type="games"
    )
    assert games_only.rate_for("premium") == Decimal("0")


def test_create_list_and_conflict(seed, discounts):
    created = discounts.create("standard", "devices", "0.05")
    assert created.discount_rate == Decimal("0.05")

    pairs = {(c.membership_type, c.discount_type) for c in discounts.list_configs()}
    assert pairs == {("premium", "devices"), ("standard", "devices")}

    with pytest.raises(ConflictException):
        discounts.create("standard", "devices", "0.10")


@pytest.mark.parametrize(
    "membership, discount_type, rate",
    [
        ("gold", "devices", "0.1"),
        ("premium", "snacks", "0.1"),
        ("premium", "games", "1.5"),
        ("premium", "games", "-0.1"),
        ("premium", "games", "lots"),
        ("premium", "games", "NaN"),
    ],
)
def test_invalid_configs_rejected(seed, discounts, membership, discount_type, rate):
    with pytest.raises(ValidationException):
        discounts.create(membership, discount_type, rate)


def test_update_missing_is_not_found(seed, discounts):
    with pytest.raises(NotFoundException):
        discounts.update("standard", "games", "0.10")


def test_write_invalidates_cached_rate(db_session, seed):
    cache = new_discount_cache(60)
    service = DiscountService(db_session, DiscountRepository(db_session), cache=cache)

    assert service.rate_for("premium") == Decimal("0.20")
    assert len(cache) == 1

    service.update("premium", "devices", "0.25")
    assert len(cache) == 0
    assert service.rate_for("premium") == Decimal("0.25")


def test_cached_rate_survives_direct_table_edits(db_session, seed):
    cache = new_discount_cache(60)
    service = DiscountService(db_session, DiscountRepository(db_session), cache=cache)
    assert service.rate_for("premium") == Decimal("0.20")

    config = DiscountRepository(db_session).get_config("premium", "devices")
    config.discount_rate = Decimal("0.50")
    db_session.commit()

    # served from cache until the TTL expires
    assert service.rate_for("premium") == Decimal("0.20")


class ManualTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class SteppingTimer:
    """Advances on every read, so an entry can expire between two lookups."""

    def __init__(self, step):
        self.now = 0.0
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


class ClearingCache(TTLCache):
    """Empties itself right after a lookup or a store, like an invalidate from another request."""

    clear_on_check = False
    clear_on_store = False
    _clearing = False

    def _clear_now(self):
        if self._clearing:
            return
        self._clearing = True
        try:
            self.clear()
        finally:
            self._clearing = False

    def __contains__(self, key):
        found = super().__contains__(key)
        if self.clear_on_check:
            self._clear_now()
        return found

    def __setitem__(self, key, value):
        super().__setitem__(key, value)
        if self.clear_on_store:
            self._clear_now()


def test_cached_rate_expires_at_ttl_boundary(db_session, seed):
    timer = ManualTimer()
    cache = TTLCache(maxsize=8, ttl=60, timer=timer)
    service = DiscountService(db_session, DiscountRepository(db_session), cache=cache)
    assert service.rate_for("premium") == Decimal("0.20")

    config = DiscountRepository(db_session).get_config("premium", "devices")
    config.discount_rate = Decimal("0.50")
    db_session.commit()

    timer.now = 59.999
    assert service.rate_for("premium") == Decimal("0.20")

    timer.now = 60.0
    assert service.rate_for("premium") == Decimal("0.50")


def test_rate_for_never_raises_while_entries_expire(db_session, seed):
    cache = TTLCache(maxsize=8, ttl=1, timer=SteppingTimer(0.25))
    service = DiscountService(
        db_session, DiscountRepository(db_session), cache=cache, lock=RLock()
    )

    for _ in range(40):
        assert service.rate_for("premium") == Decimal("0.20")
        assert service.rate_for("standard") == Decimal("0")


def test_rate_for_survives_clear_after_check(db_session, seed):
    cache = ClearingCache(maxsize=8, ttl=60)
    service = DiscountService(db_session, DiscountRepository(db_session), cache=cache)
    assert service.rate_for("premium") == Decimal("0.20")
    assert len(cache) == 1

    cache.clear_on_check = True
    assert service.rate_for("premium") == Decimal("0.20")
    assert service.rate_for("premium") == Decimal("0.20")


def test_rate_for_returns_computed_rate_when_cleared_after_store(db_session, seed):
    cache = ClearingCache(maxsize=8, ttl=60)
    cache.clear_on_store = True
    service = DiscountService(db_session, DiscountRepository(db_session), cache=cache)

    assert service.rate_for("premium") == Decimal("0.20")
    assert len(cache) == 0
    assert service.rate_for("standard") == Decimal("0")


def test_rate_for_from_many_threads(session_factory, seed):
    cache = TTLCache(maxsize=8, ttl=1, timer=SteppingTimer(0.01))
    lock = RLock()

    def worker(_):
        session = session_factory()
        try:
            service = DiscountService(
                session, DiscountRepository(session), cache=cache, lock=lock
            )
            return [service.rate_for("premium") for _ in range(25)]
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(worker, range(8)))

    assert all(rate == Decimal("0.20") for batch in results for rate in batch)


def test_upsert_many_is_all_or_nothing(seed, discounts):
    with pytest.raises(ValidationException):
        discounts.upsert_many(
            [
                ("standard", "games", Decimal("0.05")),
                ("premium", "games", Decimal("2")),
            ]
        )
    assert len(discounts.list_configs()) == 1

    result = discounts.upsert_many(
        [
            ("standard", "games", Decimal("0.05")),
            ("premium", "devices", Decimal("0.30")),
        ]
    )
    assert len(result) == 2
    config_map = discounts.get_config_map()
    assert config_map[("standard", "games")] == Decimal("0.05")
    assert config_map[("premium", "devices")] == Decimal("0.30")


def test_delete(seed, discounts):
    discounts.delete("premium", "devices")
    assert discounts.list_configs() == []
    assert discounts.rate_for("premium") == Decimal("0")

    with pytest.raises(NotFoundException):
        discounts.delete("premium", "devices")


def test_calculate_discount(seed, discounts):
    calc = discounts.calculate_discount("premium", "devices", Decimal("10"))

    assert calc.original_amount == Decimal("10.00")
    assert calc.discount_amount == Decimal("2.00")
    assert calc.final_amount == Decimal("8.00")

    none = discounts.calculate_discount("standard", "devices", "3.33")
    assert none.discount_rate == Decimal("0")
    assert none.final_amount == Decimal("3.33")
