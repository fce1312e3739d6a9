"""Environment-driven configuration for stores, logging, and the API server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

STORE_BACKENDS = {"memory", "json"}
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")

_DOTENV_LOADED = False


def _parse_dotenv_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line.removeprefix("export ").lstrip()
    if not line or line.startswith("#"):
        return None
    key, sep, value = line.partition("=")
    if not sep or not key.strip():
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key.strip(), value


def load_dotenv(path: str | Path = ".env") -> None:
    """Seed `os.environ` from `path` once per process; real env vars take precedence."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True

    dotenv_path = Path(path)
    if not dotenv_path.is_file():
        return
    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_dotenv_line(raw_line)
        if parsed is not None:
            os.environ.setdefault(*parsed)


def getenv_any(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty variable among `names`, else `default`."""
    load_dotenv()
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _positive_int(name: str, default: int) -> int:
    raw = getenv_any(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer; received {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1; received {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration resolved once at process start."""

    store_backend: str = "memory"
    data_dir: Path = Path("server/data")
    commit_attempts: int = 3
    event_log_dir: Path | None = None
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from `CODENAMES_*` environment variables (and `.env`)."""
        backend = (getenv_any("CODENAMES_STORE", default="memory") or "memory").strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(f"CODENAMES_STORE must be one of {sorted(STORE_BACKENDS)}; received {backend!r}")

        event_log_dir = getenv_any("CODENAMES_EVENT_LOG_DIR")
        raw_origins = getenv_any("CODENAMES_CORS_ORIGINS")
        origins = (
            tuple(origin.strip() for origin in raw_origins.split(",") if origin.strip())
            if raw_origins
            else DEFAULT_CORS_ORIGINS
        )
        return cls(
            store_backend=backend,
            data_dir=Path(getenv_any("CODENAMES_DATA_DIR", default="server/data") or "server/data"),
            commit_attempts=_positive_int("CODENAMES_COMMIT_ATTEMPTS", 3),
            event_log_dir=Path(event_log_dir) if event_log_dir else None,
            cors_origins=origins,
            log_level=(getenv_any("CODENAMES_LOG_LEVEL", default="INFO") or "INFO").upper(),
        )
