from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass
import json
import os
from pathlib import Path

DEFAULT_PAGE_SIZE = 200
MAX_PAGE_SIZE = 1000
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


def default_state_dir() -> Path:
    return Path.home() / ".storage_explorer"


def clamp_page_size(value: object, default: int = DEFAULT_PAGE_SIZE) -> int:
    """Clamp a requested page size to ``[1, MAX_PAGE_SIZE]``.

    Anything that is not a number of at least one falls back to ``default``.
    """

    if isinstance(value, bool):
        return default
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return default
    if number < 1:
        return default
    return min(number, MAX_PAGE_SIZE)


def parse_port(value: object) -> int | None:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if port <= 0 or port > 65535:
        return None
    return port


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    page_size: int = DEFAULT_PAGE_SIZE
    default_region: str = "us-east-1"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    remember_last_view: bool = True

    def with_environment(self, environ: dict[str, str] | None = None) -> "AppSettings":
        """Return a copy with ``HOST``/``PORT`` environment overrides applied."""

        env = os.environ if environ is None else environ
        host = env.get("HOST") or self.host
        port = parse_port(env.get("PORT")) or self.port
        return AppSettings(
            page_size=self.page_size,
            default_region=self.default_region,
            host=host,
            port=port,
            remember_last_view=self.remember_last_view,
        )


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = default_state_dir() / "settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()

        page_size = clamp_page_size(data.get("page_size"), AppSettings.page_size)
        region = data.get("default_region")
        if not isinstance(region, str) or not region.strip():
            region = AppSettings.default_region
        host = data.get("host")
        if not isinstance(host, str) or not host.strip():
            host = AppSettings.host
        port = parse_port(data.get("port")) or AppSettings.port
        remember = data.get("remember_last_view", AppSettings.remember_last_view)
        if not isinstance(remember, bool):
            remember = AppSettings.remember_last_view
        return AppSettings(
            page_size=page_size,
            default_region=region.strip(),
            host=host.strip(),
            port=port,
            remember_last_view=remember,
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["page_size"] = clamp_page_size(settings.page_size)
        payload["port"] = parse_port(settings.port) or DEFAULT_PORT
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
