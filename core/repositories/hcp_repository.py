from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.api_client import DashboardApiClient
from core.config import get_api_max_workers
from core.exceptions import FetchFailure
from core.models import ClinicalEvent, HcpSummary, Patient, PrescriptionHistoryRecord

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_list(path: str, payload: Any, model: Type[ModelT]) -> List[ModelT]:
    """Validate a JSON array into models; a malformed payload is a fetch failure"""
    if not isinstance(payload, list):
        raise FetchFailure(path, detail=f"expected a list, got {type(payload).__name__}")
    try:
        return [model.model_validate(item) for item in payload]
    except ValidationError as e:
        raise FetchFailure(path, detail=f"unexpected payload: {e.error_count()} validation error(s)") from e


@dataclass
class HcpBundle:
    """Everything the HCP detail view reads, fetched in one go"""
    hcp: HcpSummary
    patients: List[Patient] = field(default_factory=list)
    events: List[ClinicalEvent] = field(default_factory=list)
    prescription_history: List[PrescriptionHistoryRecord] = field(default_factory=list)
    prescription_trends: List[Dict[str, Any]] = field(default_factory=list)
    call_notes: List[Dict[str, Any]] = field(default_factory=list)
    payer_communications: List[Dict[str, Any]] = field(default_factory=list)


class HcpRepository:
    """Read-only access to HCP records on the data service"""

    def __init__(self, client: DashboardApiClient):
        self.client = client

    def get_hcp(self, hcp_id: int) -> HcpSummary:
        path = f"/api/hcps/{hcp_id}"
        payload = self.client.get(path)
        try:
            return HcpSummary.model_validate(payload)
        except ValidationError as e:
            raise FetchFailure(path, detail=f"unexpected payload: {e.error_count()} validation error(s)") from e

    def get_patients(self, hcp_id: int) -> List[Patient]:
        path = f"/api/hcps/{hcp_id}/patients"
        return parse_list(path, self.client.get(path), Patient)

    def get_events(self, hcp_id: int) -> List[ClinicalEvent]:
        path = f"/api/hcps/{hcp_id}/events"
        return parse_list(path, self.client.get(path), ClinicalEvent)

    def get_prescription_history(self, hcp_id: int) -> List[PrescriptionHistoryRecord]:
        path = f"/api/prescription-history/{hcp_id}"
        return parse_list(path, self.client.get(path), PrescriptionHistoryRecord)

    def get_prescription_trends(self, hcp_id: int) -> List[Dict[str, Any]]:
        """Monthly own-vs-competitor counts, passed through untransformed"""
        path = f"/api/hcps/{hcp_id}/prescription-trends"
        payload = self.client.get(path)
        if not isinstance(payload, list):
            raise FetchFailure(path, detail="expected a list")
        return payload

    def get_call_notes(self, hcp_id: int) -> List[Dict[str, Any]]:
        return self.client.get_list_or_empty(f"/api/hcps/{hcp_id}/call-notes")

    def get_payer_communications(self, hcp_id: int) -> List[Dict[str, Any]]:
        return self.client.get_list_or_empty(f"/api/hcps/{hcp_id}/payer-communications")

    def fetch_hcp_bundle(self, hcp_id: int, max_workers: Optional[int] = None) -> HcpBundle:
        """
        Fetch all HCP reads concurrently.

        The reads do not depend on each other. The first FetchFailure is
        re-raised once every request has finished, so none is left pending.
        """
        fetchers: Dict[str, Callable[[int], Any]] = {
            'hcp': self.get_hcp,
            'patients': self.get_patients,
            'events': self.get_events,
            'prescription_history': self.get_prescription_history,
            'prescription_trends': self.get_prescription_trends,
            'call_notes': self.get_call_notes,
            'payer_communications': self.get_payer_communications,
        }

        with ThreadPoolExecutor(max_workers=max_workers or get_api_max_workers()) as executor:
            futures = {name: executor.submit(fetch, hcp_id) for name, fetch in fetchers.items()}

        values = {}
        for name, future in futures.items():
            values[name] = future.result()

        return HcpBundle(**values)
