"""
Module: mfg_modules.costing.orm
Responsibility: SQLAlchemy persistence for costing parameters and machine
    costing categories.

Architecture position: Modules > Costing > ORM.  Inherits from TrackedBase
    (mfg_kernel.db.base).  Work orders reference categories by name, without
    a foreign key, so renaming or removing a category never breaks history.

Invariants enforced:
    - Rates use Decimal (Numeric(38,9)) -- NEVER float.
    - ParamType stored as String(20).
    - Parameter keys and category names are unique.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from mfg_config.schema import ParamType
from mfg_kernel.db.base import TrackedBase


class CostingParamModel(TrackedBase):
    """
    One global costing parameter.

    Maps to: mfg_modules.costing.models.CostingParam.
    Numeric types keep their value in ``value_number``; TEXT in ``value_text``.
    """

    __tablename__ = "costing_params"

    __table_args__ = (
        Index("idx_costing_param_group", "param_group"),
    )

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    param_type: Mapped[str] = mapped_column(String(20), nullable=False)
    value_number: Mapped[Decimal | None] = mapped_column(nullable=True)
    value_text: Mapped[str | None] = mapped_column(String(200), nullable=True)
    label: Mapped[str | None] = mapped_column(String(200), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(30), nullable=True)
    group: Mapped[str | None] = mapped_column("param_group", String(50), nullable=True)

    def to_dto(self):
        from mfg_modules.costing.models import CostingParam
        return CostingParam(
            key=self.key,
            param_type=ParamType(self.param_type),
            value_number=self.value_number,
            value_text=self.value_text,
            label=self.label,
            unit=self.unit,
            group=self.group,
        )

    def __repr__(self) -> str:
        return f"<CostingParamModel {self.key}={self.value_number or self.value_text}>"


class MachineCostingCategoryModel(TrackedBase):
    """
    Rates for one machine category.

    Maps to: mfg_modules.costing.models.MachineCostingCategory.
    """

    __tablename__ = "machine_costing_categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    labor_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    depr_per_hour: Mapped[Decimal | None] = mapped_column(nullable=True)
    tooling_per_piece: Mapped[Decimal | None] = mapped_column(nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from mfg_modules.costing.models import MachineCostingCategory
        return MachineCostingCategory(
            name=self.name,
            labor_cost=self.labor_cost,
            depr_per_hour=self.depr_per_hour,
            tooling_per_piece=self.tooling_per_piece,
            active=self.active,
        )

    def __repr__(self) -> str:
        return f"<MachineCostingCategoryModel {self.name}>"
