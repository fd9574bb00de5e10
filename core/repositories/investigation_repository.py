from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from core.api_client import DashboardApiClient
from core.exceptions import FetchFailure
from core.hypotheses import proven_hypotheses, result_from_payload, ruled_out_hypotheses
from core.models import HypothesisResult, InvestigationResults, WorkflowStage


def _parse_confirmed(items: Iterable[Any], all_results: List[HypothesisResult]) -> List[HypothesisResult]:
    """Confirmed entries may be full result objects or bare hypothesis ids"""
    by_id = {result.id: result for result in all_results}
    confirmed = []
    unknown = []
    for item in items:
        if isinstance(item, dict) and "hypothesis" in item:
            confirmed.append(result_from_payload(item))
            continue

        hypothesis_id = str(item.get("id")) if isinstance(item, dict) else str(item)
        if hypothesis_id in by_id:
            confirmed.append(by_id[hypothesis_id])
        else:
            unknown.append(hypothesis_id)

    if unknown:
        print(f"[Investigation] ⚠ Confirmed ids not in allHypotheses, ignored: {', '.join(unknown)}")
    return confirmed


def results_from_payload(payload: Dict[str, Any]) -> InvestigationResults:
    """
    Parse the serialized investigation state.

    Proven and ruled-out sets are re-derived from allHypotheses so they always
    follow the shared verdict thresholds.
    """
    body = payload.get("investigation", payload) if isinstance(payload, dict) else {}
    all_results = [result_from_payload(item) for item in body.get("allHypotheses") or []]

    has_investigation = bool(body.get("hasInvestigation", bool(all_results)))
    is_confirmed = bool(body.get("isConfirmed", False))

    if not has_investigation:
        stage = WorkflowStage.not_started
    elif is_confirmed:
        stage = WorkflowStage.confirmed
    else:
        stage = WorkflowStage.synthesizing

    session = body.get("session") or {}
    session_id = body.get("sessionId") or session.get("id")

    return InvestigationResults(
        has_investigation=has_investigation,
        session_id=str(session_id) if session_id is not None else None,
        stage=stage,
        all_hypotheses=all_results,
        proven_hypotheses=proven_hypotheses(all_results),
        ruled_out=ruled_out_hypotheses(all_results),
        confirmed_hypotheses=_parse_confirmed(body.get("confirmedHypotheses") or [], all_results),
        is_confirmed=is_confirmed,
        sme_notes=body.get("smeNotes") or "",
    )


class InvestigationRepository:
    """Investigation and strategy endpoints of the data service"""

    def __init__(self, client: DashboardApiClient):
        self.client = client

    def _parse(self, path: str, payload: Any) -> InvestigationResults:
        if not isinstance(payload, dict):
            raise FetchFailure(path, detail="expected an object")
        try:
            return results_from_payload(payload)
        except ValidationError as e:
            raise FetchFailure(path, detail=f"unexpected payload: {e.error_count()} validation error(s)") from e

    def get_results(self, hcp_id: int) -> InvestigationResults:
        path = f"/api/ai/investigation-results/{hcp_id}"
        return self._parse(path, self.client.get(path))

    def start_investigation(self, hcp_id: int) -> InvestigationResults:
        """Ask the service to generate a new investigation session"""
        path = f"/api/ai/investigate/{hcp_id}"
        return self._parse(path, self.client.post(path))

    def confirm(self, hcp_id: int, hypothesis_ids: List[str], sme_notes: str = "") -> int:
        """
        Persist a confirmation. Callers validate the selection first.

        Returns:
            Number of hypotheses the service recorded as confirmed
        """
        path = f"/api/ai/confirm-investigation/{hcp_id}"
        payload = self.client.post(path, {
            'confirmedHypotheses': list(hypothesis_ids),
            'smeNotes': sme_notes or ""
        })
        if isinstance(payload, dict):
            for key in ("confirmedCount", "count"):
                if key in payload:
                    return int(payload[key])
        return len(hypothesis_ids)

    def get_nba_results(self, hcp_id: int) -> Dict[str, Any]:
        """Strategy payload; only meaningful once the strategy gate is open"""
        path = f"/api/ai/nba-results/{hcp_id}"
        payload = self.client.get(path)
        if not isinstance(payload, dict):
            raise FetchFailure(path, detail="expected an object")
        return payload
