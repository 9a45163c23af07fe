from prometheus_client import Counter, Gauge, Histogram, Info
from prometheus_fastapi_instrumentator import Instrumentator

# Business metrics - lounge core
sessions_total = Counter(
    "game_lounge_sessions_total",
    "Total number of session lifecycle transitions",
    ["event"],  # event=started/ended
)

active_sessions_gauge = Gauge(
    "game_lounge_active_sessions_current",
    "Current number of active sessions",
)

session_duration_seconds = Histogram(
    "game_lounge_session_duration_seconds",
    "Duration of closed sessions in seconds",
    buckets=[60, 300, 900, 1800, 3600, 7200, 14400, 28800],  # 1min to 8h
)

billed_amount_total = Counter(
    "game_lounge_billed_amount_total",
    "Total amount billed on session close",
)

controller_operations_total = Counter(
    "game_lounge_controller_operations_total",
    "Controller attach/detach operations",
    ["operation"],  # operation=attach/detach
)

lifecycle_rejections_total = Counter(
    "game_lounge_lifecycle_rejections_total",
    "Lifecycle operations rejected before any write",
    ["operation", "reason"],  # reason=not_found/conflict/validation/timeout
)

# Technical metrics
power_signals_total = Counter(
    "game_lounge_power_signals_total",
    "Display power signals sent to the control sidecar",
    ["action", "status"],  # action=on/off, status=success/failure/pending
)

circuit_breaker_state = Gauge(
    "game_lounge_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["circuit_name"],
)

circuit_breaker_failures = Counter(
    "game_lounge_circuit_breaker_failures_total",
    "Total circuit breaker failures",
    ["circuit_name"],
)

app_info = Info("game_lounge_app_info", "Application information")


def setup_instrumentator() -> Instrumentator:
    return Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/api/v1/health"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )


def init_app_info(version: str = "1.0.0"):
    app_info.info({"version": version, "service": "lounge-core", "component": "api"})


class MetricsCollector:
    @staticmethod
    def record_session_started():
        sessions_total.labels(event="started").inc()
        active_sessions_gauge.inc()

    @staticmethod
    def record_session_ended(duration_sec: float, amount: float):
        sessions_total.labels(event="ended").inc()
        active_sessions_gauge.dec()
        session_duration_seconds.observe(max(0.0, duration_sec))
        billed_amount_total.inc(max(0.0, amount))

    @staticmethod
    def record_controller_operation(operation: str):
        controller_operations_total.labels(operation=operation).inc()

    @staticmethod
    def record_rejection(operation: str, reason: str):
        lifecycle_rejections_total.labels(operation=operation, reason=reason).inc()

    @staticmethod
    def record_power_signal(action: str, status: str):
        power_signals_total.labels(action=action, status=status).inc()
