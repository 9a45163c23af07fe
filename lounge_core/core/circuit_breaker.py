from typing import Any, Dict

import pybreaker
from loguru import logger

from lounge_core.config.settings import Settings
from lounge_core.monitoring.metrics import (
    circuit_breaker_failures,
    circuit_breaker_state,
)


class LoggingCircuitBreakerListener(pybreaker.CircuitBreakerListener):
    def state_change(self, cb, old_state, new_state) -> None:
        old_name = getattr(old_state, "name", old_state)
        new_name = getattr(new_state, "name", new_state)
        logger.warning(
            f"Circuit Breaker '{cb.name}' state changed: {old_name} -> {new_name}. "
            f"Failures: {cb.fail_counter}/{cb.fail_max}"
        )

        state_value = {"closed": 0, "open": 1, "half-open": 2}.get(new_name, 0)
        circuit_breaker_state.labels(circuit_name=cb.name).set(state_value)

    def failure(self, cb, exc) -> None:  # noqa: ARG002
        circuit_breaker_failures.labels(circuit_name=cb.name).inc()


class CircuitBreakerConfig:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._breakers: Dict[str, pybreaker.CircuitBreaker] = {}
        self._listener = LoggingCircuitBreakerListener()

    def _make_breaker(
        self,
        name: str,
        fail_max: int,
        reset_timeout: int,
        exclude: tuple[type[BaseException], ...] = (),
    ) -> pybreaker.CircuitBreaker:
        return pybreaker.CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            exclude=exclude,
            name=name,
            listeners=[self._listener],
        )

    def get_power_breaker(self) -> pybreaker.CircuitBreaker:
        if "power" not in self._breakers:
            self._breakers["power"] = self._make_breaker(
                name="power_control",
                fail_max=self.settings.cb_power_fail_max,
                reset_timeout=self.settings.cb_power_reset_timeout,
                exclude=(ValueError,),
            )
        return self._breakers["power"]

    def get_breaker_stats(self) -> Dict[str, Dict[str, Any]]:
        stats: Dict[str, Dict[str, Any]] = {}
        for name, breaker in self._breakers.items():
            stats[name] = {
                "state": breaker.current_state,
                "fail_counter": breaker.fail_counter,
                "fail_max": breaker.fail_max,
                "reset_timeout": breaker.reset_timeout,
            }
        return stats
