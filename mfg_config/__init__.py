"""
mfg_config -- single public entrypoint for shop configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration;
    ``get_database_url()`` is the only place the database URL is read from
    the environment.  The kernel never imports this package.

Environment:
    MFG_CONFIG_PATH  -- YAML document to load instead of the packaged defaults.
    DATABASE_URL     -- SQLAlchemy URL; in-memory SQLite when unset.

Audit relevance:
    Every first load emits ``config_loaded`` with the source path and
    checksum, tying cost figures to the configuration that produced them.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from mfg_config.loader import load_config
from mfg_config.schema import (
    CategoryDefault,
    CurrencySettings,
    InventorySettings,
    ParamDefault,
    ParamType,
    PurchasingSettings,
    ShopConfig,
    WorkOrderSettings,
)

_logger = logging.getLogger("mfg_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
DEFAULT_DATABASE_URL = "sqlite://"

_cache: dict[Path, ShopConfig] = {}
_cache_lock = threading.Lock()


def get_active_config(path: str | Path | None = None) -> ShopConfig:
    """
    Return the active configuration, loading and caching it on first use.

    Resolution order: explicit ``path``, ``MFG_CONFIG_PATH``, packaged
    defaults.
    """
    resolved = Path(path or os.environ.get("MFG_CONFIG_PATH") or DEFAULT_CONFIG_PATH).resolve()
    with _cache_lock:
        cached = _cache.get(resolved)
        if cached is not None:
            return cached
        config = load_config(resolved)
        _cache[resolved] = config

    _logger.info(
        "config_loaded",
        extra={
            "config_source": str(resolved),
            "config_version": config.version,
            "checksum": config.checksum,
            "param_count": len(config.params),
            "category_count": len(config.categories),
        },
    )
    return config


def clear_config_cache() -> None:
    """Forget cached configurations. FOR TESTING ONLY."""
    with _cache_lock:
        _cache.clear()


def get_database_url(default: str = DEFAULT_DATABASE_URL) -> str:
    return os.environ.get("DATABASE_URL", default)


__all__ = [
    "get_active_config",
    "clear_config_cache",
    "get_database_url",
    "CategoryDefault",
    "CurrencySettings",
    "InventorySettings",
    "ParamDefault",
    "ParamType",
    "PurchasingSettings",
    "ShopConfig",
    "WorkOrderSettings",
]
