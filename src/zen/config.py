"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, no
string-key dict lookups at request time.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    Every field has a default; override what you need::

        config = AppConfig(dev=True, root="site", secret_key="s3cr3t")

    Relative ``pages_dir``, ``actions_dir`` and ``static_dir`` are
    resolved against ``root``.
    """

    # Layout
    root: str | Path = "."
    pages_dir: str | Path = "pages"
    actions_dir: str | Path = "actions"
    static_dir: str | Path = "static"
    template_ext: str = ".html"

    # Mode: dev = live resolution + reload channel, else cached route table
    dev: bool = False

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 0  # 0 = auto-detect from CPU count

    # Sessions
    secret_key: str = ""
    session_cookie: str = "zen_session"
    session_max_age: int = 14 * 24 * 3600
    session_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"

    # Data
    database_url: str | None = None

    # Dev reload
    reload_debounce_ms: int = 20

    # Logging
    log_level: str = "info"

    @property
    def pages_path(self) -> Path:
        return self._resolve(self.pages_dir)

    @property
    def actions_path(self) -> Path:
        return self._resolve(self.actions_dir)

    @property
    def static_path(self) -> Path:
        return self._resolve(self.static_dir)

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = Path(self.root) / path
        return path.resolve()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> AppConfig:
        """Build a config from ``ZEN_*`` environment variables.

        ``DEV`` is honoured as an alias for ``ZEN_DEV``. Keyword
        *overrides* win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        dev = env.get("ZEN_DEV", env.get("DEV"))
        if dev is not None:
            values["dev"] = dev.strip().lower() in _TRUTHY

        for field_name, kind in (
            ("root", str),
            ("pages_dir", str),
            ("actions_dir", str),
            ("static_dir", str),
            ("host", str),
            ("port", int),
            ("workers", int),
            ("secret_key", str),
            ("session_backend", str),
            ("redis_url", str),
            ("database_url", str),
            ("log_level", str),
        ):
            raw = env.get(f"ZEN_{field_name.upper()}")
            if raw is not None:
                values[field_name] = kind(raw)

        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]
