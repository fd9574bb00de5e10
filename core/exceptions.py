"""
Error taxonomy for the switching dashboard core.

Only out-of-contract input raises. Empty datasets and "not ready yet"
strategy views are returned as values by the service layer; IncompleteWorkflow
is raised only when a caller explicitly demands strategy output.
"""
from typing import List, Optional


class DashboardError(Exception):
    """Base class for all dashboard core errors"""
    pass


class FetchFailure(DashboardError):
    """Upstream data service returned non-success or was unreachable"""

    def __init__(self, path: str, status_code: Optional[int] = None, detail: str = ""):
        self.path = path
        self.status_code = status_code
        self.detail = detail
        status = f"HTTP {status_code}" if status_code is not None else "unreachable"
        message = f"Failed to fetch {path} ({status})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidSelection(DashboardError):
    """Confirmation attempted with zero or unknown hypothesis ids"""

    def __init__(self, message: str, unknown_ids: Optional[List[str]] = None):
        self.unknown_ids = unknown_ids or []
        super().__init__(message)


class IncompleteWorkflow(DashboardError):
    """Strategy or deep-dive output requested before the gate opened"""

    def __init__(self, missing_step: str, guidance: str):
        self.missing_step = missing_step
        self.guidance = guidance
        super().__init__(guidance)


class InvalidTransition(DashboardError):
    """Workflow stage change requested out of order or with unmet preconditions"""
    pass
