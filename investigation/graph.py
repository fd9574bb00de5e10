from enum import Enum
from typing import Dict, List, Optional

from langgraph.graph import StateGraph, START, END

from core.models import Hypothesis, HypothesisResult, WorkflowStage
from investigation.nodes import investigate_agent, observe_agent, synthesize_agent
from investigation.state import InvestigationState
from investigation.workflow import InvestigationWorkflow


class RouteDecision(Enum):
    END = 'end'
    OBSERVE = 'observe'
    INVESTIGATE = 'investigate'
    SYNTHESIZE = 'synthesize'


def route_from_start(state: InvestigationState) -> str:
    """Resume at the node matching the workflow's current stage"""
    stage = state['workflow'].stage

    if stage in (WorkflowStage.not_started, WorkflowStage.observing):
        return RouteDecision.OBSERVE.value
    if stage == WorkflowStage.investigating:
        return RouteDecision.INVESTIGATE.value
    return RouteDecision.SYNTHESIZE.value


def route_after_observe(state: InvestigationState) -> str:
    if state['workflow'].stage == WorkflowStage.investigating:
        return RouteDecision.INVESTIGATE.value

    print("[Route] Observation incomplete, stopping")
    return RouteDecision.END.value


def route_after_investigate(state: InvestigationState) -> str:
    if state['workflow'].stage == WorkflowStage.synthesizing:
        return RouteDecision.SYNTHESIZE.value

    print("[Route] Verdicts incomplete, stopping")
    return RouteDecision.END.value


# Build graph
builder = StateGraph(InvestigationState)

builder.add_node('observe', observe_agent)
builder.add_node('investigate', investigate_agent)
builder.add_node('synthesize', synthesize_agent)

builder.add_conditional_edges(
    START,
    route_from_start,
    {
        RouteDecision.OBSERVE.value: 'observe',
        RouteDecision.INVESTIGATE.value: 'investigate',
        RouteDecision.SYNTHESIZE.value: 'synthesize'
    }
)

builder.add_conditional_edges(
    'observe',
    route_after_observe,
    {
        RouteDecision.INVESTIGATE.value: 'investigate',
        RouteDecision.END.value: END
    }
)

builder.add_conditional_edges(
    'investigate',
    route_after_investigate,
    {
        RouteDecision.SYNTHESIZE.value: 'synthesize',
        RouteDecision.END.value: END
    }
)

builder.add_edge('synthesize', END)

# Compile graph
graph = builder.compile()


def run_investigation(
    workflow: InvestigationWorkflow,
    signal_summary_ready: bool = False,
    signal_summary: Optional[str] = None,
    human_input: Optional[str] = None,
    hypotheses: Optional[List[Hypothesis]] = None,
    confidences: Optional[Dict[str, float]] = None,
    reasoning: Optional[Dict[str, str]] = None,
    results: Optional[List[HypothesisResult]] = None
) -> InvestigationState:
    """
    Advance a workflow as far as the supplied inputs allow.

    Stops at the first unmet precondition, or at synthesis awaiting human
    approval. Safe to call again with more inputs; finished stages are not
    re-run.

    Returns:
        Final pipeline state (stage, blocked_reason, preselected_ids, ...)
    """
    state: InvestigationState = {
        'workflow': workflow,
        'signal_summary_ready': signal_summary_ready,
        'signal_summary': signal_summary,
        'human_input': human_input,
        'hypotheses': hypotheses,
        'confidences': confidences,
        'reasoning': reasoning,
        'results': results,
        'preselected_ids': None,
        'awaiting_approval': False,
        'stage': workflow.stage.value,
        'blocked_reason': None,
        'execution_path': []
    }

    return graph.invoke(state)
