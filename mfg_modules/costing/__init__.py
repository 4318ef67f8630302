"""
Costing Module (``mfg_modules.costing``).

Global costing parameters, machine costing categories, rate resolution for
work-order rollups, and the transactional currency conversion of every
stored monetary rate.
"""

from mfg_modules.costing.models import CostingParam, CurrencyConversionResult, MachineCostingCategory
from mfg_modules.costing.service import CostingService

__all__ = [
    "CostingParam",
    "CostingService",
    "CurrencyConversionResult",
    "MachineCostingCategory",
]
