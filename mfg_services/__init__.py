"""
Manufacturing Services.

Outer boundary over the modules: ``ShopActions`` turns every operation into
an ``ActionResult`` the UI can render without catching exceptions.
"""

from mfg_services.actions import ActionResult, ShopActions, run_action

__all__ = ["ActionResult", "ShopActions", "run_action"]
