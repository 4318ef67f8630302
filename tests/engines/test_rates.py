"""
Tests for rate resolution.

Covers:
- Category -> global parameter -> zero fallback chain
- Inactive and missing categories
- Rent is always a shop-wide rate
"""

from decimal import Decimal

from mfg_engines.rates import (
    DEPRECIATION_PARAM,
    LABOR_PARAM,
    RENT_PARAM,
    TOOLING_PARAM,
    CategoryRates,
    RateCandidate,
    RateSource,
    resolve_rate,
    resolve_work_order_rates,
)

PARAMS = {
    LABOR_PARAM: Decimal("4.00"),
    RENT_PARAM: Decimal("10.00"),
    DEPRECIATION_PARAM: Decimal("0.50"),
    TOOLING_PARAM: Decimal("2.50"),
}


class TestResolveRate:

    def test_first_defined_candidate_wins(self):
        rate = resolve_rate([
            RateCandidate(RateSource.CATEGORY, "TORNO", None),
            RateCandidate(RateSource.PARAM, "hourlyRate", Decimal("3")),
        ])

        assert rate.value == Decimal("3")
        assert rate.source is RateSource.PARAM
        assert rate.label == "hourlyRate"

    def test_zero_is_a_defined_value(self):
        rate = resolve_rate([
            RateCandidate(RateSource.CATEGORY, "TORNO", Decimal("0")),
            RateCandidate(RateSource.PARAM, "hourlyRate", Decimal("3")),
        ])

        assert rate.value == Decimal("0")
        assert rate.source is RateSource.CATEGORY

    def test_nothing_defined_resolves_to_zero(self):
        rate = resolve_rate([RateCandidate(RateSource.PARAM, "hourlyRate", None)])

        assert rate.value == Decimal("0")
        assert rate.source is RateSource.DEFAULT


class TestResolveWorkOrderRates:

    def test_category_rates_take_precedence(self):
        category = CategoryRates(
            name="TORNO CNC",
            labor_cost=Decimal("5.43"),
            depr_per_hour=Decimal("0.46"),
        )

        rates = resolve_work_order_rates(category, PARAMS)

        assert rates.labor.value == Decimal("5.43")
        assert rates.labor.source is RateSource.CATEGORY
        assert rates.depreciation.value == Decimal("0.46")
        # Undefined on the category: falls through to the parameter.
        assert rates.tooling.value == Decimal("2.50")
        assert rates.tooling.source is RateSource.PARAM

    def test_rent_ignores_category(self):
        category = CategoryRates(name="TORNO", labor_cost=Decimal("1"))

        rates = resolve_work_order_rates(category, PARAMS)

        assert rates.rent.value == Decimal("10.00")
        assert rates.rent.source is RateSource.PARAM

    def test_inactive_category_is_skipped(self):
        category = CategoryRates(name="OLD", labor_cost=Decimal("99"), active=False)

        rates = resolve_work_order_rates(category, PARAMS)

        assert rates.labor.value == Decimal("4.00")
        assert rates.labor.source is RateSource.PARAM

    def test_no_category_uses_params(self):
        rates = resolve_work_order_rates(None, PARAMS)

        assert rates.labor.value == Decimal("4.00")
        assert rates.depreciation.value == Decimal("0.50")

    def test_missing_params_resolve_to_zero(self):
        rates = resolve_work_order_rates(None, {})

        for rate in (rates.labor, rates.rent, rates.depreciation, rates.tooling):
            assert rate.value == Decimal("0")
            assert rate.source is RateSource.DEFAULT

    def test_as_dict_reports_sources(self):
        rates = resolve_work_order_rates(None, {RENT_PARAM: Decimal("10")})

        as_dict = rates.as_dict()

        assert as_dict["rent"] == {"value": "10", "source": "param", "label": RENT_PARAM}
        assert as_dict["labor"]["source"] == "default"
