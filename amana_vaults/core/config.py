import json
import os
from pathlib import Path
from typing import Any

from amana_vaults.core.constants.base import DEFAULT_FEE_RATE_BPS, GENESIS_TIMESTAMP

_CONFIG_ENV_KEYS = ("AMANA_CONFIG_PATH", "AMANA_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"

_VAULT_DEFAULTS: dict[str, Any] = {
    "name": "Amana USDC Vault",
    "symbol": "amUSDC",
    "fee_rate_bps": DEFAULT_FEE_RATE_BPS,
    "strict_strategy_migration": False,
}


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        data = json.loads(cfg_path.read_text())
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def get_vault_defaults() -> dict[str, Any]:
    vault = CONFIG.get("vault", {})
    merged = dict(_VAULT_DEFAULTS)
    if isinstance(vault, dict):
        merged.update({k: v for k, v in vault.items() if k in _VAULT_DEFAULTS})
    merged["fee_rate_bps"] = int(merged["fee_rate_bps"])
    merged["strict_strategy_migration"] = bool(merged["strict_strategy_migration"])
    return merged


def get_log_level() -> str:
    system = CONFIG.get("system", {})
    level = system.get("log_level") if isinstance(system, dict) else None
    if level:
        return str(level).strip().upper()
    return os.environ.get("AMANA_LOG_LEVEL", "INFO").strip().upper()


def get_genesis_timestamp() -> int:
    chain = CONFIG.get("chain", {})
    value = chain.get("genesis_timestamp") if isinstance(chain, dict) else None
    if value is None:
        return GENESIS_TIMESTAMP
    return int(value)


def get_chain_id() -> int | str:
    chain = CONFIG.get("chain", {})
    value = chain.get("chain_id") if isinstance(chain, dict) else None
    return value if value is not None else "base"
