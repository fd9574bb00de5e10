"""
Stage nodes for the investigation pipeline.

Each node advances the workflow only when the stage's precondition is met
and otherwise reports why it stopped. Nodes never approve; confirmation is
a human action taken outside the graph.
"""
from core.hypotheses import default_preselection, evaluate_all
from core.models import WorkflowStage
from investigation.state import InvestigationState


def observe_agent(state: InvestigationState) -> dict:
    workflow = state['workflow']

    if workflow.stage == WorkflowStage.not_started:
        workflow.start()

    if workflow.stage == WorkflowStage.observing:
        if not (state.get('signal_summary_ready') or workflow.signal_summary_ready):
            print("[Pipeline] Observe: waiting for signal correlation summary")
            return {
                'stage': workflow.stage.value,
                'blocked_reason': "Signal correlation summary is still generating",
                'execution_path': ['observe']
            }

        if not workflow.signal_summary_ready:
            workflow.mark_signal_summary_ready(state.get('signal_summary'))
        workflow.complete_observation(state.get('human_input'))

    return {
        'stage': workflow.stage.value,
        'blocked_reason': None,
        'execution_path': ['observe']
    }


def investigate_agent(state: InvestigationState) -> dict:
    workflow = state['workflow']

    if workflow.stage == WorkflowStage.investigating:
        results = state.get('results')

        if not results:
            hypotheses = state.get('hypotheses') or []
            registered_ids = [h.id for h in workflow.session.hypotheses]
            if hypotheses:
                if registered_ids and [h.id for h in hypotheses] != registered_ids:
                    print(f"[Pipeline] Investigate: replacing hypothesis set {registered_ids}")
                workflow.register_hypotheses(hypotheses)

            hypothesis_set = workflow.session.hypotheses
            confidences = state.get('confidences') or {}
            missing = [h.id for h in hypothesis_set if h.id not in confidences]

            if not hypothesis_set or missing:
                reason = (
                    "No hypotheses generated yet" if not hypothesis_set
                    else f"Awaiting confidence scores for: {', '.join(missing)}"
                )
                print(f"[Pipeline] Investigate: {reason}")
                return {
                    'stage': workflow.stage.value,
                    'blocked_reason': reason,
                    'execution_path': ['investigate']
                }

            results = evaluate_all(hypothesis_set, confidences, state.get('reasoning'))

        workflow.record_verdicts(results)
        print(f"[Pipeline] Investigate: {len(results)} hypotheses evaluated")

    return {
        'stage': workflow.stage.value,
        'blocked_reason': None,
        'execution_path': ['investigate']
    }


def synthesize_agent(state: InvestigationState) -> dict:
    workflow = state['workflow']
    results = list(workflow.session.results)
    preselected = default_preselection(results)

    awaiting = workflow.stage == WorkflowStage.synthesizing
    if awaiting:
        print(f"[Pipeline] Synthesize: {len(preselected)} proven hypotheses preselected, awaiting approval")

    return {
        'stage': workflow.stage.value,
        'results': results,
        'preselected_ids': preselected,
        'awaiting_approval': awaiting,
        'blocked_reason': "Awaiting human confirmation of root causes" if awaiting else None,
        'execution_path': ['synthesize']
    }
