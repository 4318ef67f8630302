"""
Costing Module Service (``mfg_modules.costing.service``).

Responsibility
--------------
Owns the costing parameter store: seeding defaults from configuration,
validated parameter updates, machine category upserts, resolution of the
four work-order rates, and the all-or-nothing currency conversion.

Architecture
------------
Layer: **Modules**.  Rate precedence is decided by ``mfg_engines.rates``;
conversion direction and arithmetic by ``mfg_engines.currency``.  This
service loads rows, calls the engines and writes results back.

Invariants
----------
- Each public write method owns its transaction boundary.
- ``convert_currency`` rewrites every active category rate and every
  CURRENCY-typed parameter and flips the ``currency`` parameter in ONE
  transaction; any failure rolls all of it back.
- NUMBER and PERCENT parameters are dimensionless and never converted.

Failure Modes
-------------
- ``InvalidParamValueError`` for out-of-range values.
- ``CostingParamNotFoundError`` for unknown keys.
- ``InvalidExchangeRateError`` / ``CurrencyMismatchError`` /
  ``ValidationError`` from conversion planning.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config
from mfg_config.schema import ParamType
from mfg_engines.currency import plan_conversion
from mfg_engines.rates import CategoryRates, ResolvedRates, resolve_work_order_rates
from mfg_kernel.domain.clock import Clock, SystemClock
from mfg_kernel.exceptions import (
    CostingParamNotFoundError,
    CurrencyMismatchError,
    InvalidParamValueError,
    ValidationError,
)
from mfg_kernel.logging_config import get_logger
from mfg_modules.costing.models import CostingParam, CurrencyConversionResult, MachineCostingCategory
from mfg_modules.costing.orm import CostingParamModel, MachineCostingCategoryModel

logger = get_logger("modules.costing.service")

CURRENCY_PARAM = "currency"

_CATEGORY_RATE_FIELDS = ("labor_cost", "depr_per_hour", "tooling_per_piece")


def validate_param_value(key: str, param_type: ParamType, value) -> Decimal | str:
    """
    Check ``value`` against the rules of ``param_type`` and normalize it.

    PERCENT must lie in [0, 1]; NUMBER and CURRENCY must be >= 0; TEXT must
    be non-empty.
    """
    if param_type is ParamType.TEXT:
        text = "" if value is None else str(value).strip()
        if not text:
            raise InvalidParamValueError(key, param_type.value, "text value must not be empty")
        return text

    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidParamValueError(key, param_type.value, f"not a number: {value!r}") from exc
    if not number.is_finite():
        raise InvalidParamValueError(key, param_type.value, "value must be finite")
    if number < 0:
        raise InvalidParamValueError(key, param_type.value, "value must be >= 0")
    if param_type is ParamType.PERCENT and number > 1:
        raise InvalidParamValueError(key, param_type.value, "percentage must be within [0, 1]")
    return number


class CostingService:
    """
    Costing parameters, machine categories and currency conversion.

    Transaction boundary: this service commits on success, rolls back on
    failure.  ``resolve_rates`` and the getters only read and may be used
    inside another service's transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ShopConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    # =========================================================================
    # Defaults
    # =========================================================================

    def ensure_defaults(self, actor_id: UUID) -> tuple[int, int]:
        """
        Seed missing parameters and categories from configuration.

        Existing rows are never overwritten.  Returns the number of
        parameters and categories created.
        """
        params_created = 0
        categories_created = 0
        try:
            existing_keys = set(
                self._session.execute(select(CostingParamModel.key)).scalars().all()
            )
            for default in self._config.params:
                if default.key in existing_keys:
                    continue
                self._session.add(
                    CostingParamModel(
                        key=default.key,
                        param_type=default.param_type.value,
                        value_number=default.value_number,
                        value_text=default.value_text,
                        label=default.label,
                        unit=default.unit,
                        group=default.group,
                        created_by_id=actor_id,
                    )
                )
                params_created += 1

            existing_names = set(
                self._session.execute(select(MachineCostingCategoryModel.name)).scalars().all()
            )
            for default in self._config.categories:
                if default.name in existing_names:
                    continue
                self._session.add(
                    MachineCostingCategoryModel(
                        name=default.name,
                        labor_cost=default.labor_cost,
                        depr_per_hour=default.depr_per_hour,
                        tooling_per_piece=default.tooling_per_piece,
                        active=default.active,
                        created_by_id=actor_id,
                    )
                )
                categories_created += 1

            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "costing_defaults_ensured",
            extra={"params_created": params_created, "categories_created": categories_created},
        )
        return params_created, categories_created

    # =========================================================================
    # Parameters
    # =========================================================================

    def _param_row(self, key: str) -> CostingParamModel:
        row = self._session.execute(
            select(CostingParamModel).where(CostingParamModel.key == key)
        ).scalar_one_or_none()
        if row is None:
            raise CostingParamNotFoundError(key)
        return row

    def get_param(self, key: str) -> CostingParam:
        return self._param_row(key).to_dto()

    def list_params(self, group: str | None = None) -> list[CostingParam]:
        stmt = select(CostingParamModel).order_by(CostingParamModel.key)
        if group is not None:
            stmt = stmt.where(CostingParamModel.group == group)
        return [row.to_dto() for row in self._session.execute(stmt).scalars().all()]

    def set_param(self, key: str, value, actor_id: UUID) -> CostingParam:
        """Validate and store a new value for an existing parameter."""
        try:
            row = self._param_row(key)
            param_type = ParamType(row.param_type)
            normalized = validate_param_value(key, param_type, value)
            if param_type is ParamType.TEXT:
                row.value_text = normalized
            else:
                row.value_number = normalized
            row.updated_by_id = actor_id
            self._session.flush()
            dto = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "costing_param_updated",
            extra={"key": key, "param_type": param_type.value, "value": str(normalized)},
        )
        return dto

    def numeric_params(self) -> dict[str, Decimal | None]:
        """Every non-TEXT parameter by key."""
        rows = self._session.execute(
            select(CostingParamModel).where(CostingParamModel.param_type != ParamType.TEXT.value)
        ).scalars().all()
        return {row.key: row.value_number for row in rows}

    def active_currency(self) -> str:
        """The currency stored rates are expressed in."""
        row = self._session.execute(
            select(CostingParamModel).where(CostingParamModel.key == CURRENCY_PARAM)
        ).scalar_one_or_none()
        if row is None or not row.value_text:
            return self._config.currency.base_currency
        return row.value_text.strip().upper()

    # =========================================================================
    # Categories
    # =========================================================================

    def _category_row(self, name: str) -> MachineCostingCategoryModel | None:
        return self._session.execute(
            select(MachineCostingCategoryModel).where(MachineCostingCategoryModel.name == name)
        ).scalar_one_or_none()

    def get_category(self, name: str) -> MachineCostingCategory | None:
        row = self._category_row(name)
        return row.to_dto() if row is not None else None

    def list_categories(self, active_only: bool = False) -> list[MachineCostingCategory]:
        stmt = select(MachineCostingCategoryModel).order_by(MachineCostingCategoryModel.name)
        if active_only:
            stmt = stmt.where(MachineCostingCategoryModel.active.is_(True))
        return [row.to_dto() for row in self._session.execute(stmt).scalars().all()]

    def upsert_category(
        self,
        name: str,
        actor_id: UUID,
        labor_cost: Decimal | None = None,
        depr_per_hour: Decimal | None = None,
        tooling_per_piece: Decimal | None = None,
        active: bool = True,
    ) -> MachineCostingCategory:
        """Create or replace a category's rates.  A None rate means undefined."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        rates = {
            "labor_cost": labor_cost,
            "depr_per_hour": depr_per_hour,
            "tooling_per_piece": tooling_per_piece,
        }
        for field_name, value in rates.items():
            if value is not None:
                rates[field_name] = validate_param_value(
                    f"{name}.{field_name}", ParamType.CURRENCY, value,
                )

        try:
            row = self._category_row(name)
            created = row is None
            if created:
                row = MachineCostingCategoryModel(name=name, created_by_id=actor_id)
                self._session.add(row)
            else:
                row.updated_by_id = actor_id
            for field_name, value in rates.items():
                setattr(row, field_name, value)
            row.active = active
            self._session.flush()
            dto = row.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "machine_category_upserted",
            extra={"category": name, "category_created": created, "active": active},
        )
        return dto

    # =========================================================================
    # Rates
    # =========================================================================

    def resolve_rates(self, category_name: str | None = None) -> ResolvedRates:
        """
        Labor, rent, depreciation and tooling rates for a machine category.

        Unknown or inactive categories fall through to the global
        parameters; undefined rates resolve to zero.
        """
        category = None
        if category_name:
            row = self._category_row(category_name)
            if row is not None:
                category = CategoryRates(
                    name=row.name,
                    labor_cost=row.labor_cost,
                    depr_per_hour=row.depr_per_hour,
                    tooling_per_piece=row.tooling_per_piece,
                    active=row.active,
                )
        rates = resolve_work_order_rates(category, self.numeric_params())
        logger.debug(
            "rates_resolved",
            extra={"category": category_name, "rates": rates.as_dict()},
        )
        return rates

    # =========================================================================
    # Currency conversion
    # =========================================================================

    def convert_currency(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        actor_id: UUID,
    ) -> CurrencyConversionResult:
        """
        Re-express every stored monetary rate in ``to_currency``.

        ``rate`` is the number of ``to_currency`` units per one
        ``from_currency`` unit.  Active categories and CURRENCY parameters
        are converted and rounded to 2 decimals; the ``currency``
        parameter is set to ``to_currency``.

        Raises:
            InvalidExchangeRateError: rate <= 0.
            CurrencyMismatchError: ``from_currency`` is not the active currency.
            ValidationError: malformed codes, identical currencies, or a
                pair that does not involve the base currency.
        """
        plan = plan_conversion(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            base_currency=self._config.currency.base_currency,
        )

        categories_converted = 0
        params_converted = 0
        try:
            active = self.active_currency()
            if active != plan.from_currency:
                raise CurrencyMismatchError(expected=active, actual=plan.from_currency)

            categories = self._session.execute(
                select(MachineCostingCategoryModel)
                .where(MachineCostingCategoryModel.active.is_(True))
                .order_by(MachineCostingCategoryModel.name)
            ).scalars().all()
            for category in categories:
                for field_name in _CATEGORY_RATE_FIELDS:
                    value = getattr(category, field_name)
                    if value is not None:
                        setattr(category, field_name, plan.apply(value))
                category.updated_by_id = actor_id
                categories_converted += 1

            params = self._session.execute(
                select(CostingParamModel)
                .where(CostingParamModel.param_type == ParamType.CURRENCY.value)
                .order_by(CostingParamModel.key)
            ).scalars().all()
            for param in params:
                if param.value_number is not None:
                    param.value_number = plan.apply(param.value_number)
                    param.updated_by_id = actor_id
                    params_converted += 1

            currency_row = self._session.execute(
                select(CostingParamModel).where(CostingParamModel.key == CURRENCY_PARAM)
            ).scalar_one_or_none()
            if currency_row is None:
                currency_row = CostingParamModel(
                    key=CURRENCY_PARAM,
                    param_type=ParamType.TEXT.value,
                    label="Currency",
                    group="general",
                    created_by_id=actor_id,
                )
                self._session.add(currency_row)
            currency_row.value_text = plan.to_currency
            currency_row.updated_by_id = actor_id

            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "currency_converted",
            extra={
                "from_currency": plan.from_currency,
                "to_currency": plan.to_currency,
                "rate": str(plan.rate),
                "direction": plan.direction.value,
                "categories_converted": categories_converted,
                "params_converted": params_converted,
            },
        )
        return CurrencyConversionResult(
            from_currency=plan.from_currency,
            to_currency=plan.to_currency,
            rate=plan.rate,
            direction=plan.direction.value,
            categories_converted=categories_converted,
            params_converted=params_converted,
        )
