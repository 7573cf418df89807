from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os


PACKAGE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_FREQUENCY_TABLE_PATH = PACKAGE_DIR / "resources" / "kanji_frequency.txt"
DEFAULT_CORS_ORIGINS = ("http://127.0.0.1:4173", "http://localhost:4173")
DEFAULT_READY_SENTINEL = "All set, awaiting commands"
FALSE_VALUES = {"0", "false", "no"}


@dataclass(frozen=True)
class Settings:
    environment: str
    app_name: str
    host: str
    port: int
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    docker_socket: Path = Path("/var/run/docker.sock")
    docker_api_version: str | None = None
    container_name: str = "ichiran-main-1"
    dependency_containers: tuple[str, ...] = ("ichiran-pg-1",)
    ready_sentinel: str = DEFAULT_READY_SENTINEL
    startup_timeout_seconds: float = 25 * 60.0
    query_timeout_seconds: float = 45 * 60.0
    analyzer_autostart: bool = True
    kanji_readings_enabled: bool = True
    frequency_table_path: Path = DEFAULT_FREQUENCY_TABLE_PATH
    default_frequency_threshold: int = 1000


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in FALSE_VALUES


def _env_tuple(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def load_settings() -> Settings:
    dependency_raw = os.getenv("YOMIKATA_DEPENDENCY_CONTAINERS")
    dependency_containers = (
        _env_tuple("YOMIKATA_DEPENDENCY_CONTAINERS")
        if dependency_raw is not None
        else ("ichiran-pg-1",)
    )
    return Settings(
        environment=os.getenv("YOMIKATA_ENV", "development"),
        app_name=os.getenv("YOMIKATA_APP_NAME", "yomikata-backend"),
        host=os.getenv("YOMIKATA_HOST", "127.0.0.1"),
        port=int(os.getenv("YOMIKATA_PORT", "8000")),
        cors_origins=_env_tuple("YOMIKATA_CORS_ORIGINS") or DEFAULT_CORS_ORIGINS,
        log_level=os.getenv("YOMIKATA_LOG_LEVEL", "INFO").upper(),
        docker_socket=Path(os.getenv("YOMIKATA_DOCKER_SOCKET", "/var/run/docker.sock")),
        docker_api_version=os.getenv("YOMIKATA_DOCKER_API_VERSION") or None,
        container_name=os.getenv("YOMIKATA_CONTAINER_NAME", "ichiran-main-1"),
        dependency_containers=dependency_containers,
        ready_sentinel=os.getenv("YOMIKATA_READY_SENTINEL", DEFAULT_READY_SENTINEL),
        startup_timeout_seconds=float(os.getenv("YOMIKATA_STARTUP_TIMEOUT_SECONDS", "1500")),
        query_timeout_seconds=float(os.getenv("YOMIKATA_QUERY_TIMEOUT_SECONDS", "2700")),
        analyzer_autostart=_env_flag("YOMIKATA_ANALYZER_AUTOSTART"),
        kanji_readings_enabled=_env_flag("YOMIKATA_KANJI_READINGS_ENABLED"),
        frequency_table_path=Path(
            os.getenv("YOMIKATA_FREQUENCY_TABLE_PATH", str(DEFAULT_FREQUENCY_TABLE_PATH))
        ),
        default_frequency_threshold=int(os.getenv("YOMIKATA_DEFAULT_FREQUENCY_THRESHOLD", "1000")),
    )
