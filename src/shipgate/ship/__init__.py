"""Ship phase."""

from shipgate.ship.orchestrator import ShipAttempt, ShipDecision, ShipState, run_ship

__all__ = ["ShipAttempt", "ShipDecision", "ShipState", "run_ship"]
