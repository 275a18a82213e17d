"""Exceptions raised by the maintenance domain."""

from core.interfaces.advisory import AdvisoryError
from core.interfaces.maintenance_store import StoreUnavailableError


class MaintenanceError(Exception):
    """Base class for maintenance domain errors."""


class RequestNotFoundError(MaintenanceError):
    def __init__(self, request_id: int):
        super().__init__(f"Service request {request_id} not found")
        self.request_id = request_id


class InvalidTransitionError(MaintenanceError):
    def __init__(self, request_id, current, target):
        super().__init__(f"Service request {request_id} cannot move from {current} to {target}")
        self.current = current
        self.target = target


class ScheduleRuleNotFoundError(MaintenanceError):
    def __init__(self, rule_id: int):
        super().__init__(f"Schedule rule {rule_id} not found")
        self.rule_id = rule_id


__all__ = [
    "MaintenanceError",
    "StoreUnavailableError",
    "RequestNotFoundError",
    "InvalidTransitionError",
    "ScheduleRuleNotFoundError",
    "AdvisoryError",
]
