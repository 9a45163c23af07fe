from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from loguru import logger

from lounge_core.clients.power import PowerControlClient
from lounge_core.monitoring.metrics import MetricsCollector


class PowerSignaller:
    """Best-effort display power signalling.

    Runs after the billing transaction has committed. The outcome is reported
    as a warning string (or None on success) and never raised.

    The caller blocks on the sidecar call for at most ``wait_sec``
    (``power_signal_wait_sec``), so a slow or unreachable sidecar delays the
    StartSession and EndSession responses by up to that long. A call still
    running after the wait keeps going on the executor and its outcome is not
    reported back.
    """

    def __init__(
        self,
        client: Optional[PowerControlClient],
        executor: Optional[Executor],
        wait_sec: float,
    ):
        self._client = client
        self._executor = executor
        self._wait_sec = wait_sec

    @property
    def enabled(self) -> bool:
        return self._client is not None and self._executor is not None

    def power_on(self, location: str) -> Optional[str]:
        return self._signal("on", location)

    def power_off(self, location: str) -> Optional[str]:
        return self._signal("off", location)

    def _signal(self, action: str, location: str) -> Optional[str]:
        if not self.enabled:
            logger.debug(f"Power control disabled, skipping power-{action} for '{location}'")
            return None

        send = self._client.power_on if action == "on" else self._client.power_off
        try:
            future = self._executor.submit(send, location)
        except RuntimeError as e:
            warning = f"Power-{action} signal for '{location}' not dispatched: {e}"
            logger.warning(warning)
            MetricsCollector.record_power_signal(action, "failure")
            return warning

        try:
            success, error = future.result(timeout=self._wait_sec)
        except FutureTimeoutError:
            warning = (
                f"Power-{action} signal for '{location}' still pending "
                f"after {self._wait_sec}s"
            )
            logger.warning(warning)
            MetricsCollector.record_power_signal(action, "pending")
            return warning
        except Exception as e:
            success, error = False, str(e)

        if success:
            MetricsCollector.record_power_signal(action, "success")
            return None

        warning = f"Power-{action} signal for '{location}' failed: {error}"
        logger.warning(warning)
        MetricsCollector.record_power_signal(action, "failure")
        return warning
