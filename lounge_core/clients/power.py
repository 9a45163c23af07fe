from typing import Optional, Tuple

import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lounge_core.config.settings import Settings
from lounge_core.core.circuit_breaker import CircuitBreakerConfig
from lounge_core.core.exceptions import PowerSignalFailedException


class PowerControlClient:
    """HTTP client for the TV power-control sidecar.

    The sidecar resolves a station location to the display's network address
    and sends Wake-on-LAN (on) or the vendor power-off call (off).
    """

    def __init__(self, settings: Settings):
        self._session = self._build_session()
        self._timeout = settings.http_timeout_sec
        self._base = settings.power_control_base

        self._cb_config = CircuitBreakerConfig(settings)
        self._power_breaker = self._cb_config.get_power_breaker()

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        retries = Retry(
            total=2,
            connect=2,
            read=1,
            backoff_factor=0.2,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"User-Agent": "lounge-core/1.0"})
        return session

    def _url(self, path: str) -> str:
        return f"{self._base.rstrip('/')}/{path.lstrip('/')}"

    def _post(self, path: str, payload: dict) -> dict:
        response = self._session.post(
            self._url(path), json=payload, timeout=self._timeout
        )
        response.raise_for_status()
        return response.json() if response.content else {}

    def _send(self, action: str, location: str) -> Tuple[bool, Optional[str]]:
        @self._power_breaker
        def _send_power():
            data = self._post("/api/tv/power", {"action": action, "location": location})
            if data and data.get("success") is False:
                raise PowerSignalFailedException(
                    action, location, data.get("error") or "sidecar refused"
                )
            logger.debug(f"Power-{action} signal delivered for '{location}'")
            return True, None

        try:
            return _send_power()
        except Exception as e:
            error_msg = str(e)
            logger.warning(f"Failed to send power-{action} for '{location}': {error_msg}")
            return False, error_msg

    def power_on(self, location: str) -> Tuple[bool, Optional[str]]:
        return self._send("on", location)

    def power_off(self, location: str) -> Tuple[bool, Optional[str]]:
        return self._send("off", location)

    def get_circuit_breaker_stats(self):
        return self._cb_config.get_breaker_stats()

    def close(self) -> None:
        self._session.close()
