"""
Configuration schema (``mfg_config.schema``).

Frozen dataclasses describing the shop configuration document.  Every
parsed configuration is one ``ShopConfig``; nothing downstream reads YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class ParamType(str, Enum):
    NUMBER = "NUMBER"
    PERCENT = "PERCENT"
    CURRENCY = "CURRENCY"
    TEXT = "TEXT"

    @property
    def is_numeric(self) -> bool:
        return self is not ParamType.TEXT


@dataclass(frozen=True)
class ParamDefault:
    """Seed value for one costing parameter."""

    key: str
    param_type: ParamType
    value_number: Decimal | None = None
    value_text: str | None = None
    label: str | None = None
    unit: str | None = None
    group: str | None = None


@dataclass(frozen=True)
class CategoryDefault:
    """Seed rates for one machine costing category."""

    name: str
    labor_cost: Decimal | None = None
    depr_per_hour: Decimal | None = None
    tooling_per_piece: Decimal | None = None
    active: bool = True


@dataclass(frozen=True)
class InventorySettings:
    # Number of most recent purchase receipts averaged into the reference cost.
    weighted_average_window: int = 10
    allow_negative_stock: bool = False


@dataclass(frozen=True)
class WorkOrderSettings:
    manual_start_min_coverage: Decimal = Decimal("0.20")
    code_prefix: str = "OT"


@dataclass(frozen=True)
class PurchasingSettings:
    request_code_prefix: str = "SC"
    order_code_prefix: str = "OC"


@dataclass(frozen=True)
class CurrencySettings:
    base_currency: str = "USD"


@dataclass(frozen=True)
class ShopConfig:
    """The complete, validated configuration."""

    version: int
    inventory: InventorySettings = field(default_factory=InventorySettings)
    work_orders: WorkOrderSettings = field(default_factory=WorkOrderSettings)
    purchasing: PurchasingSettings = field(default_factory=PurchasingSettings)
    currency: CurrencySettings = field(default_factory=CurrencySettings)
    params: tuple[ParamDefault, ...] = ()
    categories: tuple[CategoryDefault, ...] = ()
    checksum: str = ""
    source: str = ""

    def param(self, key: str) -> ParamDefault | None:
        for p in self.params:
            if p.key == key:
                return p
        return None
