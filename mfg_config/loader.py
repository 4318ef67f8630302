"""
Configuration Loader (``mfg_config.loader``).

Responsibility
--------------
Loads the YAML configuration document and parses it into the typed
``mfg_config.schema`` dataclasses.  Runtime callers use
``mfg_config.get_active_config()``; this module is its implementation.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Numeric values are parsed as ``Decimal`` from their string form.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``key``/``type``/``name`` entries  -> ``KeyError``.
* Invalid number or unknown parameter type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

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


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML node must be a mapping")
    return data


def _decimal(value: Any, where: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{where}: not a number: {value!r}") from exc


def parse_param(data: dict[str, Any]) -> ParamDefault:
    key = data["key"]
    try:
        param_type = ParamType(str(data["type"]).upper())
    except ValueError as exc:
        raise ValueError(f"param {key}: unknown type {data['type']!r}") from exc

    raw = data.get("value")
    if param_type is ParamType.TEXT:
        value_number, value_text = None, (None if raw is None else str(raw))
    else:
        value_number, value_text = _decimal(raw, f"param {key}"), None

    return ParamDefault(
        key=key,
        param_type=param_type,
        value_number=value_number,
        value_text=value_text,
        label=data.get("label"),
        unit=data.get("unit"),
        group=data.get("group"),
    )


def parse_category(data: dict[str, Any]) -> CategoryDefault:
    name = data["name"]
    return CategoryDefault(
        name=name,
        labor_cost=_decimal(data.get("labor_cost"), f"category {name}"),
        depr_per_hour=_decimal(data.get("depr_per_hour"), f"category {name}"),
        tooling_per_piece=_decimal(data.get("tooling_per_piece"), f"category {name}"),
        active=bool(data.get("active", True)),
    )


def parse_config(data: dict[str, Any], source: str = "") -> ShopConfig:
    """Build a ``ShopConfig`` from a parsed YAML mapping."""
    inventory = data.get("inventory") or {}
    work_orders = data.get("work_orders") or {}
    purchasing = data.get("purchasing") or {}
    currency = data.get("currency") or {}

    window = int(inventory.get("weighted_average_window", 10))
    if window < 1:
        raise ValueError("inventory.weighted_average_window must be >= 1")

    min_coverage = _decimal(
        work_orders.get("manual_start_min_coverage", "0.20"),
        "work_orders.manual_start_min_coverage",
    )
    if not Decimal("0") <= min_coverage <= Decimal("1"):
        raise ValueError("work_orders.manual_start_min_coverage must be within [0, 1]")

    return ShopConfig(
        version=int(data.get("version", 1)),
        inventory=InventorySettings(
            weighted_average_window=window,
            allow_negative_stock=bool(inventory.get("allow_negative_stock", False)),
        ),
        work_orders=WorkOrderSettings(
            manual_start_min_coverage=min_coverage,
            code_prefix=str(work_orders.get("code_prefix", "OT")),
        ),
        purchasing=PurchasingSettings(
            request_code_prefix=str(purchasing.get("request_code_prefix", "SC")),
            order_code_prefix=str(purchasing.get("order_code_prefix", "OC")),
        ),
        currency=CurrencySettings(
            base_currency=str(currency.get("base_currency", "USD")).upper(),
        ),
        params=tuple(parse_param(p) for p in data.get("params") or ()),
        categories=tuple(parse_category(c) for c in data.get("categories") or ()),
        checksum=compute_checksum(data),
        source=source,
    )


def load_config(path: Path) -> ShopConfig:
    return parse_config(load_yaml_file(path), source=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a configuration mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
