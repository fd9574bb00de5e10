from typing import Annotated, Any, Dict, List, Optional
from typing_extensions import TypedDict

from core.models import Hypothesis, HypothesisResult


def safe_add_lists(left: Optional[List], right: Optional[List]) -> List:
    """Safely add two lists, treating None as empty list"""
    if left is None:
        left = []
    if right is None:
        right = []
    return left + right


class InvestigationState(TypedDict, total=False):
    # InvestigationWorkflow being driven; mutated only through its transitions
    workflow: Any

    # Observe
    signal_summary_ready: bool
    signal_summary: Optional[str]
    human_input: Optional[str]

    # Investigate
    hypotheses: Optional[List[Hypothesis]]
    confidences: Optional[Dict[str, float]]
    reasoning: Optional[Dict[str, str]]
    results: Optional[List[HypothesisResult]]

    # Synthesize
    preselected_ids: Optional[List[str]]
    awaiting_approval: bool

    stage: str
    blocked_reason: Optional[str]
    execution_path: Annotated[List[str], safe_add_lists]
