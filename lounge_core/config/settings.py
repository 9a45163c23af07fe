from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def find_env_file() -> str:
    env_file = ".env" if Path("/.dockerenv").exists() else ".env.local"

    current_path = Path.cwd()

    for path in [current_path] + list(current_path.parents):
        env_path = path / env_file
        if env_path.exists():
            return str(env_path)

    return env_file


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+psycopg2://app:app@db:5432/lounge"
    db_timeout_sec: float = 5.0  # connection acquisition bound

    # Sessions
    max_controllers_per_session: int = 2
    require_game: bool = False  # reject StartSession without a game
    session_discount_type: str = "devices"  # discount_configs row used for sessions
    discount_ttl_sec: int = 60

    # Equipment
    maintenance_threshold_days: int = 30

    # TV power control sidecar
    power_control_enabled: bool = True
    power_control_base: str = "http://tv-control:3001"
    http_timeout_sec: float = 1.5
    # upper bound on how long StartSession/EndSession responses wait for the sidecar
    power_signal_wait_sec: float = 2.0
    power_signal_workers: int = 4

    # Circuit Breaker settings
    cb_power_fail_max: int = 5
    cb_power_reset_timeout: int = 30  # seconds

    # Logging
    log_level: str = "INFO"
