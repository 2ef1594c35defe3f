from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── MongoDB ──────────────────────────────────────────
    mongo_server_selection_timeout_ms: int = 5000

    # Deployments the conformance runner replays commands against.
    mongo_standalone_uri: str = "mongodb://localhost:27017"
    mongo_router_uris: list[str] = Field(
        default_factory=lambda: [
            "mongodb://localhost:27018",
            "mongodb://localhost:27019",
        ]
    )
    mongo_shard_uri: str = "mongodb://localhost:27020/?directConnection=true"

    # ── Golden reports ───────────────────────────────────
    golden_verbosity: str = "allPlansExecution"
    golden_format: str = "json"

    # ── Conformance runner ───────────────────────────────
    # Commands that need extra server start-up configuration.
    conformance_denylist: list[str] = Field(
        default_factory=lambda: [
            "startRecordingTraffic",
            "stopRecordingTraffic",
            "addShardToZone",
            "removeShardFromZone",
            "oidcListKeys",
            "oidcRefreshKeys",
        ]
    )
    conformance_failpoint_mode: str = "alwaysOn"
    conformance_cases: str = ""


settings = Settings()
