"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from mev_share_analysis.errors import ConfigError
from mev_share_analysis.models.config import AnalysisConfig


def _set(target: object, attr: str, section: dict, key: str, cast: Callable[[Any], Any]) -> None:
    if key not in section:
        return
    try:
        setattr(target, attr, cast(section[key]))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {key!r}: {section[key]!r}") from exc


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if str(value).lower() in ("1", "true", "yes", "on"):
        return True
    if str(value).lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(value)


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "MEV_SHARE_",
) -> AnalysisConfig:
    """Load configuration from a TOML file and environment variables.

    Priority (highest wins):
        1. Environment variables (MEV_SHARE_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from AnalysisConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            try:
                with open(p, "rb") as f:
                    raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{p}: {exc}") from exc

    cfg = AnalysisConfig()

    # ── API section ────────────────────────────────────────
    api = raw.get("api", {})
    _set(cfg.api, "history_url", api, "history_url", str)
    _set(cfg.api, "request_timeout", api, "request_timeout", int)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    _set(cfg.chain, "rpc_url", chain, "rpc_url", str)
    _set(cfg.chain, "rpc_timeout", chain, "rpc_timeout", int)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    _set(cfg.storage, "db_path", storage, "db_path", str)
    _set(cfg.storage, "table", storage, "table", str)

    # ── Sync section ───────────────────────────────────────
    sync = raw.get("sync", {})
    _set(cfg.sync, "backoff_seconds", sync, "backoff_seconds", int)
    _set(cfg.sync, "error_backoff", sync, "error_backoff", int)
    _set(cfg.sync, "write_retries", sync, "write_retries", int)

    # ── Scan section ───────────────────────────────────────
    scan = raw.get("scan", {})
    _set(cfg.scan, "batch_size", scan, "batch_size", int)
    _set(cfg.scan, "allow_disk_use", scan, "allow_disk_use", _bool)
    _set(cfg.scan, "chain_retries", scan, "chain_retries", int)
    _set(cfg.scan, "retry_backoff", scan, "retry_backoff", float)
    _set(cfg.scan, "write_retries", scan, "write_retries", int)

    # ── Logging section ────────────────────────────────────
    logging_raw = raw.get("logging", {})
    _set(cfg, "log_level", logging_raw, "level", str)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.chain.rpc_url = rpc
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.storage.db_path = db
    if url := os.environ.get(f"{env_prefix}HISTORY_URL"):
        cfg.api.history_url = url
    if table := os.environ.get(f"{env_prefix}TABLE"):
        cfg.storage.table = table
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    if not cfg.storage.table.isidentifier():
        raise ConfigError(f"invalid table name: {cfg.storage.table!r}")
    if cfg.sync.backoff_seconds < 0 or cfg.sync.error_backoff < 0:
        raise ConfigError("sync backoff values must be >= 0")

    # Expand ~ in paths
    if cfg.storage.db_path != ":memory:":
        cfg.storage.db_path = str(Path(cfg.storage.db_path).expanduser())

    return cfg
