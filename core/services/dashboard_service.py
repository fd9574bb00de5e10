from typing import Any, Dict, List, Optional

from core.api_client import get_api_client
from core.cohorts import cohort_color, cohort_label, overall_switch_rate, summarize_cohort_switching
from core.config import get_target_product
from core.events import align_events, first_event_of_type, timeline_position
from core.gate import strategy_readiness
from core.hypotheses import default_preselection, resolve_selection
from core.models import InvestigationResults
from core.repositories.hcp_repository import HcpRepository
from core.repositories.investigation_repository import InvestigationRepository
from core.thresholds import risk_badge
from core.timeline import build_timeline, timeline_to_frame

# Event types annotated on the timeline chart, one marker each (earliest)
OVERLAY_EVENT_TYPES = ['conference', 'adverse_event', 'payer_policy_change', 'access_barrier']


def overlay_markers(events, timeline) -> List[Dict[str, Any]]:
    if not timeline:
        return []
    markers = []
    for event_type in OVERLAY_EVENT_TYPES:
        event = first_event_of_type(events, event_type)
        if event is None:
            continue
        markers.append({
            'event': event,
            'position': timeline_position(event.event_date, timeline[0].month, timeline[-1].month),
        })
    return markers


def _not_ready_view(results: Optional[InvestigationResults]) -> Optional[Dict[str, Any]]:
    readiness = strategy_readiness(results)
    if readiness.ready:
        return None
    return {
        'status': 'not_ready',
        'missing_step': readiness.missing_step,
        'title': readiness.title,
        'guidance': readiness.guidance,
        'action_label': readiness.action_label,
    }


class DashboardService:
    """
    View-level entry point for the HCP switching dashboard.

    Every method returns a plain dict with a `status` key: 'ok', 'empty',
    'not_ready', 'generating' or 'ready'. Fetch failures propagate as
    FetchFailure; empty data and closed gates are values, not errors.
    """

    def __init__(
        self,
        hcp_repo: Optional[HcpRepository] = None,
        investigation_repo: Optional[InvestigationRepository] = None,
        target_product: Optional[str] = None
    ):
        if hcp_repo is None or investigation_repo is None:
            client = get_api_client()
            hcp_repo = hcp_repo or HcpRepository(client)
            investigation_repo = investigation_repo or InvestigationRepository(client)

        self.hcp_repo = hcp_repo
        self.investigation_repo = investigation_repo
        self.target_product = target_product or get_target_product()

    def get_overview(self, hcp_id: int) -> Dict[str, Any]:
        """
        Timeline, cohort summaries and event overlays for one HCP.

        Returns:
            Dict with status 'empty' (and a reason) when there are no
            patients or no history for the target product, else 'ok'
        """
        bundle = self.hcp_repo.fetch_hcp_bundle(hcp_id)
        hcp = bundle.hcp

        base = {
            'hcp': hcp,
            'risk_badge': risk_badge(hcp.switch_risk_tier, hcp.switch_risk_score),
            'target_product': self.target_product,
        }

        if not bundle.patients:
            return {**base, 'status': 'empty', 'reason': 'No patients recorded for this HCP'}

        timeline = build_timeline(bundle.patients, bundle.prescription_history, self.target_product)
        if not timeline:
            return {
                **base,
                'status': 'empty',
                'reason': f'No prescription history for {self.target_product}'
            }

        summaries = summarize_cohort_switching(bundle.patients)
        cohorts = [
            {'cohort': cohort, 'label': cohort_label(cohort), 'color': cohort_color(cohort)}
            for cohort in summaries
        ]

        return {
            **base,
            'status': 'ok',
            'cohorts': cohorts,
            'cohort_summaries': summaries,
            'overall_switch_rate': overall_switch_rate(bundle.patients),
            'timeline': timeline,
            'timeline_frame': timeline_to_frame(timeline),
            'aligned_events': align_events(bundle.events, timeline),
            'overlay_markers': overlay_markers(bundle.events, timeline),
            'prescription_trends': bundle.prescription_trends,
            'call_notes': bundle.call_notes,
            'payer_communications': bundle.payer_communications,
        }

    def get_investigation(self, hcp_id: int) -> Dict[str, Any]:
        """Current investigation state with the confirmation form's defaults"""
        results = self.investigation_repo.get_results(hcp_id)
        readiness = strategy_readiness(results)

        return {
            'status': 'ok' if results.has_investigation else 'empty',
            'results': results,
            'preselected_ids': default_preselection(results.all_hypotheses),
            'can_show_strategies': readiness.ready,
            'readiness': readiness,
        }

    def start_investigation(self, hcp_id: int) -> InvestigationResults:
        print(f"[Dashboard] Starting investigation for HCP {hcp_id}")
        return self.investigation_repo.start_investigation(hcp_id)

    def confirm_investigation(
        self,
        hcp_id: int,
        hypothesis_ids: List[str],
        sme_notes: str = ""
    ) -> Dict[str, Any]:
        """
        Validate the selection against the current results, then persist it.

        Raises:
            InvalidSelection: empty selection or ids not in the investigation
        """
        results = self.investigation_repo.get_results(hcp_id)
        confirmed = resolve_selection(results.all_hypotheses, hypothesis_ids)
        ids = [result.id for result in confirmed]

        count = self.investigation_repo.confirm(hcp_id, ids, sme_notes)
        print(f"[Dashboard] ✓ HCP {hcp_id}: {count} root cause(s) confirmed")

        return {
            'success': True,
            'confirmed_count': count,
            'confirmed_ids': ids,
        }

    def get_deep_dive(self, hcp_id: int) -> Dict[str, Any]:
        """Confirmed root causes next to the raw evidence streams, gated"""
        results = self.investigation_repo.get_results(hcp_id)
        blocked = _not_ready_view(results)
        if blocked:
            return blocked

        return {
            'status': 'ready',
            'confirmed_hypotheses': results.confirmed_hypotheses,
            'ruled_out': results.ruled_out,
            'sme_notes': results.sme_notes,
            'call_notes': self.hcp_repo.get_call_notes(hcp_id),
            'payer_communications': self.hcp_repo.get_payer_communications(hcp_id),
        }

    def get_strategy_view(self, hcp_id: int) -> Dict[str, Any]:
        """
        Strategy panel state.

        'not_ready' carries the missing step and its guidance, 'generating'
        means the gate is open but no strategy exists yet (poll again),
        'ready' carries the strategy payload.
        """
        results = self.investigation_repo.get_results(hcp_id)
        blocked = _not_ready_view(results)
        if blocked:
            return blocked

        payload = self.investigation_repo.get_nba_results(hcp_id)
        nba = payload.get('nba')
        if not nba:
            return {
                'status': 'generating',
                'confirmed_hypotheses': results.confirmed_hypotheses,
            }

        return {
            'status': 'ready',
            'nba': nba,
            'confirmed_hypotheses': results.confirmed_hypotheses,
        }
