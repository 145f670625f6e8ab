import logging
import os
from dataclasses import dataclass


class ConfigError(ValueError):
    """Raised when an environment setting cannot be used."""


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    land_dataset_path: str = "data/earth-lands.geojson"
    health_check_endpoint: str = "/health"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_allow_origins: tuple[str, ...] = ("*",)
    trace_console_export: bool = False

    def __post_init__(self):
        if not self.health_check_endpoint.startswith("/"):
            raise ConfigError(
                f"HEALTH_CHECK_ENDPOINT must start with '/': {self.health_check_endpoint!r}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown LOG_LEVEL: {self.log_level!r}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"PORT out of range: {self.port}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls) -> "Settings":
        raw_port = os.getenv("PORT", "8000")
        try:
            port = int(raw_port)
        except ValueError:
            raise ConfigError(f"PORT must be an integer, got {raw_port!r}") from None

        origins = tuple(
            o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
        )
        return cls(
            land_dataset_path=os.getenv("LAND_DATASET_PATH", cls.land_dataset_path),
            health_check_endpoint=os.getenv("HEALTH_CHECK_ENDPOINT", cls.health_check_endpoint),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            host=os.getenv("HOST", cls.host),
            port=port,
            cors_allow_origins=origins or ("*",),
            trace_console_export=_env_bool("TRACE_CONSOLE_EXPORT"),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level_number,
        format="%(asctime)s %(levelname)s %(message)s",
    )
