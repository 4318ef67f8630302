"""
Manufacturing Modules.

Thin orchestration layers over the kernel ledger and the pure engines.
Each module contains:
- Domain models (frozen DTOs)
- ORM persistence models
- Workflows (state machines)
- A service that owns its transaction boundary

Modules:
- Inventory: products, manual movements, valuation maintenance, kardex
- Costing: parameters, machine categories, rate resolution, currency conversion
- Workorders: work orders, material issue, production, cost snapshot
- Purchasing: requests, orders, receipts, pending-quantity reconciliation

Computation lives in mfg_engines; the ledger lives in mfg_kernel.
"""
