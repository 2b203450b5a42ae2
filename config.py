from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class PulseConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PULSE_")

    # Snapshot producer
    snapshot_url: str = "http://127.0.0.1:8765/api/snapshot"
    fetch_timeout_secs: float = 10.0

    # Settings persistence
    db_path: Path = Path.home() / ".claude" / "claudepulse.db"

    # Presentation surface
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"


config = PulseConfig()
