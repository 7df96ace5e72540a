"""Config loading utilities for the order server."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

STORAGE_MODES = ("memory", "file")
NOTIFIER_MODES = ("disabled", "polling", "webhook")
DEFAULT_COFFEE_KINDS = ["Cappuccino", "Latte Macchiato", "Americano", "Espresso"]


class ConfigError(ValueError):
    """Raised when the configuration cannot be used to start the server."""


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class StorageConfig:
    mode: str = "file"
    orders_file: str = "data/orders.json"


@dataclass
class NotifierConfig:
    mode: str = "polling"
    bot_token: str = ""
    chat_id: str = ""
    webhook_url: str = ""
    webhook_path: str = "/telegram/webhook"
    api_base_url: str = "https://api.telegram.org"
    timeout_seconds: float = 10.0
    poll_timeout_seconds: int = 10

    @property
    def has_credentials(self) -> bool:
        """True when a plausible bot token and a target chat are both present."""

        token = self.bot_token.strip()
        return len(token) > 20 and token != "disabled" and bool(self.chat_id.strip())

    @property
    def enabled(self) -> bool:
        return self.mode != "disabled" and self.has_credentials


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)
    coffee_kinds: List[str] = field(default_factory=lambda: list(DEFAULT_COFFEE_KINDS))


def load_config(path: Optional[str | Path] = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load configuration from YAML, then apply environment overrides.

    A missing file is not an error: defaults are used and a warning is logged.
    """

    raw: Dict[str, Any] = {}
    if path is not None:
        resolved = Path(path).expanduser().resolve()
        if resolved.exists():
            with resolved.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        else:
            logging.getLogger(__name__).warning("Config file %s not found, using defaults", resolved)
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(raw).__name__}")

    server = raw.get("server") or {}
    storage = raw.get("storage") or {}
    notifier = raw.get("notifier") or {}

    cfg = AppConfig(
        server=ServerConfig(
            host=server.get("host", "0.0.0.0"),
            port=int(server.get("port", 3000)),
            cors_origins=_origins(server.get("cors_origins", ["*"])),
        ),
        storage=StorageConfig(
            mode=storage.get("mode", "file"),
            orders_file=storage.get("orders_file", "data/orders.json"),
        ),
        notifier=NotifierConfig(
            mode=notifier.get("mode", "polling"),
            bot_token=str(notifier.get("bot_token") or ""),
            chat_id=str(notifier.get("chat_id") or ""),
            webhook_url=notifier.get("webhook_url") or "",
            webhook_path=notifier.get("webhook_path", "/telegram/webhook"),
            api_base_url=notifier.get("api_base_url", "https://api.telegram.org"),
            timeout_seconds=float(notifier.get("timeout_seconds", 10.0)),
            poll_timeout_seconds=int(notifier.get("poll_timeout_seconds", 10)),
        ),
        coffee_kinds=list(raw.get("coffee_kinds") or DEFAULT_COFFEE_KINDS),
    )
    apply_env_overrides(cfg, os.environ if env is None else env)
    validate_config(cfg)
    return cfg


def apply_env_overrides(cfg: AppConfig, env: Mapping[str, str]) -> None:
    """Overlay deployment environment variables onto a loaded config."""

    if env.get("HOST"):
        cfg.server.host = env["HOST"]
    if env.get("PORT"):
        try:
            cfg.server.port = int(env["PORT"])
        except ValueError as exc:
            raise ConfigError(f"PORT must be an integer, got {env['PORT']!r}") from exc
    if env.get("CORS_ORIGINS"):
        cfg.server.cors_origins = _origins(env["CORS_ORIGINS"])
    if env.get("STORAGE_MODE"):
        cfg.storage.mode = env["STORAGE_MODE"]
    if env.get("ORDERS_FILE"):
        cfg.storage.orders_file = env["ORDERS_FILE"]
    if env.get("NOTIFIER_MODE"):
        cfg.notifier.mode = env["NOTIFIER_MODE"]
    if env.get("TELEGRAM_BOT_TOKEN"):
        cfg.notifier.bot_token = env["TELEGRAM_BOT_TOKEN"]
    if env.get("TELEGRAM_CHAT_ID"):
        cfg.notifier.chat_id = env["TELEGRAM_CHAT_ID"]
    if env.get("TELEGRAM_WEBHOOK_URL"):
        cfg.notifier.webhook_url = env["TELEGRAM_WEBHOOK_URL"]


def _origins(value: Any) -> List[str]:
    """Accept a list of origins or a comma-separated string."""

    if isinstance(value, str):
        return [o.strip() for o in value.split(",") if o.strip()]
    return [str(o).strip() for o in value or [] if str(o).strip()]


def validate_config(cfg: AppConfig) -> None:
    cfg.storage.mode = cfg.storage.mode.strip().lower()
    cfg.notifier.mode = cfg.notifier.mode.strip().lower()
    if cfg.storage.mode not in STORAGE_MODES:
        raise ConfigError(f"storage.mode must be one of {STORAGE_MODES}, got {cfg.storage.mode!r}")
    if cfg.notifier.mode not in NOTIFIER_MODES:
        raise ConfigError(f"notifier.mode must be one of {NOTIFIER_MODES}, got {cfg.notifier.mode!r}")
    if not cfg.coffee_kinds:
        raise ConfigError("coffee_kinds must not be empty")
    if cfg.notifier.mode == "webhook" and cfg.notifier.enabled and not cfg.notifier.webhook_url:
        raise ConfigError("notifier.webhook_url is required in webhook mode")


__all__ = [
    "load_config",
    "apply_env_overrides",
    "validate_config",
    "AppConfig",
    "ConfigError",
    "ServerConfig",
    "StorageConfig",
    "NotifierConfig",
    "STORAGE_MODES",
    "NOTIFIER_MODES",
    "DEFAULT_COFFEE_KINDS",
]
