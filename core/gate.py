"""
StrategyGate: may recommendation content be shown for an investigation?

Open only when an investigation exists, it reached the confirmed stage, and
the ledger holds at least one confirmed hypothesis. Evaluate it on every
request; confirmation state can change between requests.
"""
from dataclasses import dataclass
from typing import Optional

from core.exceptions import IncompleteWorkflow
from core.models import InvestigationResults


@dataclass(frozen=True)
class StrategyReadiness:
    ready: bool
    missing_step: Optional[str] = None
    title: str = ""
    guidance: str = ""
    action_label: str = ""


READY = StrategyReadiness(ready=True)

NO_INVESTIGATION = StrategyReadiness(
    ready=False,
    missing_step="start_investigation",
    title="Investigation Required",
    guidance="Complete the causal investigation and confirm root causes to generate strategy recommendations.",
    action_label="Start Investigation",
)

NOT_CONFIRMED = StrategyReadiness(
    ready=False,
    missing_step="review_and_confirm",
    title="Investigation Required",
    guidance="Review and confirm your investigation findings to generate strategy recommendations.",
    action_label="Review & Confirm",
)

NO_ROOT_CAUSES = StrategyReadiness(
    ready=False,
    missing_step="confirm_root_causes",
    title="Confirm Root Causes",
    guidance="At least one hypothesis must be confirmed as a root cause to generate strategies.",
    action_label="Select Root Causes",
)


def can_show_strategies(results: Optional[InvestigationResults]) -> bool:
    return strategy_readiness(results).ready


def strategy_readiness(results: Optional[InvestigationResults]) -> StrategyReadiness:
    """Which step, if any, still blocks strategy output"""
    if results is None or not results.has_investigation:
        return NO_INVESTIGATION
    if not results.is_confirmed:
        return NOT_CONFIRMED
    if not results.confirmed_hypotheses:
        return NO_ROOT_CAUSES
    return READY


def require_strategies(results: Optional[InvestigationResults]) -> None:
    """
    Raises:
        IncompleteWorkflow: the gate is closed; carries the missing step
    """
    readiness = strategy_readiness(results)
    if not readiness.ready:
        raise IncompleteWorkflow(readiness.missing_step, readiness.guidance)
