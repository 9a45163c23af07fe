import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
import requests

from lounge_core.clients.power import PowerControlClient
from lounge_core.config.settings import Settings
from lounge_core.services.power import PowerSignaller

from conftest import FakePowerClient


def _response(payload):
    response = Mock()
    response.raise_for_status = Mock()
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    return response


@pytest.fixture
def client():
    settings = Settings(
        power_control_base="http://tv-control:3001/",
        cb_power_fail_max=2,
        cb_power_reset_timeout=60,
    )
    power = PowerControlClient(settings)
    power._session = Mock()
    yield power


def test_client_posts_action_and_location(client):
    client._session.post.return_value = _response({"success": True})

    assert client.power_on("hall-1") == (True, None)

    args, kwargs = client._session.post.call_args
    assert args[0] == "http://tv-control:3001/api/tv/power"
    assert kwargs["json"] == {"action": "on", "location": "hall-1"}
    assert kwargs["timeout"] == 1.5


def test_client_treats_empty_body_as_success(client):
    client._session.post.return_value = _response(None)

    assert client.power_off("hall-1") == (True, None)
    assert client._session.post.call_args.kwargs["json"]["action"] == "off"


def test_client_reports_sidecar_refusal(client):
    client._session.post.return_value = _response(
        {"success": False, "error": "tv offline"}
    )

    ok, error = client.power_off("hall-2")

    assert ok is False
    assert "tv offline" in error


def test_client_reports_transport_errors(client):
    client._session.post.side_effect = requests.ConnectionError("connection refused")

    ok, error = client.power_on("hall-1")

    assert ok is False
    assert "connection refused" in error


def test_client_breaker_opens_after_repeated_failures(client):
    client._session.post.side_effect = requests.Timeout("timed out")

    for _ in range(3):
        ok, _ = client.power_on("hall-1")
        assert ok is False

    stats = client.get_circuit_breaker_stats()
    assert stats["power"]["state"] == "open"
    assert stats["power"]["fail_max"] == 2

    # open breaker short-circuits without touching the network
    calls = client._session.post.call_count
    client.power_on("hall-1")
    assert client._session.post.call_count == calls


def test_signaller_success_returns_no_warning(executor):
    fake = FakePowerClient()
    signaller = PowerSignaller(fake, executor, wait_sec=1.0)

    assert signaller.power_on("hall-1") is None
    assert signaller.power_off("hall-1") is None
    assert fake.calls == [("on", "hall-1"), ("off", "hall-1")]


def test_signaller_failure_becomes_warning(executor):
    signaller = PowerSignaller(FakePowerClient(fail=True), executor, wait_sec=1.0)

    warning = signaller.power_off("hall-3")

    assert "hall-3" in warning
    assert "sidecar unreachable" in warning


def test_signaller_swallows_client_exceptions(executor):
    broken = Mock()
    broken.power_on.side_effect = RuntimeError("boom")
    signaller = PowerSignaller(broken, executor, wait_sec=1.0)

    warning = signaller.power_on("hall-1")

    assert "boom" in warning


def test_signaller_does_not_wait_for_slow_sidecar(executor):
    release = threading.Event()
    slow = Mock()
    slow.power_on.side_effect = lambda location: (release.wait(5), None)
    signaller = PowerSignaller(slow, executor, wait_sec=0.05)

    try:
        started = time.monotonic()
        warning = signaller.power_on("hall-1")
        waited = time.monotonic() - started
    finally:
        release.set()

    assert "still pending" in warning
    assert waited < 1.0


def test_signaller_reports_undispatched_signal():
    pool = ThreadPoolExecutor(max_workers=1)
    pool.shutdown()
    signaller = PowerSignaller(FakePowerClient(), pool, wait_sec=1.0)

    warning = signaller.power_on("hall-1")

    assert "not dispatched" in warning


def test_signaller_disabled():
    signaller = PowerSignaller(None, None, wait_sec=1.0)

    assert signaller.enabled is False
    assert signaller.power_on("hall-1") is None
