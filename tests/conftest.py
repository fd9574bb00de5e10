from urllib.parse import urlparse

import pytest
import requests

from core.api_client import DashboardApiClient
from core.models import ClinicalEvent, Evidence, Hypothesis, Patient, PrescriptionHistoryRecord

TARGET = "Onco-Pro"
MONTHS = [f"2025-{month:02d}" for month in range(1, 11)]

YOUNG_RCC_SWITCHES = ["2025-06-16", "2025-06-20", "2025-06-28", "2025-07-02", "2025-07-05"]
CV_RISK_SWITCHES = ["2025-09-05", "2025-09-08", "2025-09-12", "2025-09-20"]


def make_patient(code, cohort, switched_date=None, **extra):
    return Patient.model_validate({
        "patientCode": code,
        "cohort": cohort,
        "switchedDate": switched_date,
        **extra
    })


def patient_payloads():
    payloads = []
    for index, switched in enumerate(YOUNG_RCC_SWITCHES, 1):
        payloads.append({"patientCode": f"YR-{index:03d}", "cohort": "young_rcc",
                         "switchedDate": f"{switched}T00:00:00.000Z", "switchedToDrug": "Competitor-X"})
    for index, switched in enumerate(CV_RISK_SWITCHES, 1):
        payloads.append({"patientCode": f"CV-{index:03d}", "cohort": "cv_risk",
                         "switchedDate": f"{switched}T00:00:00.000Z", "switchedToDrug": "Competitor-X"})
    for index in range(1, 4):
        payloads.append({"patientCode": f"ST-{index:03d}", "cohort": "stable", "switchedDate": None})
    return payloads


def history_payloads():
    rows = []
    for month in MONTHS:
        rows.append({"month": month, "productName": TARGET, "prescriptionCount": 40, "isOurProduct": 1})
        rows.append({"month": month, "productName": "Competitor-X", "prescriptionCount": 10, "isOurProduct": 0})
    return rows


def event_payloads():
    return [
        {"id": 1, "eventDate": "2025-06-01T00:00:00.000Z", "eventTitle": "ASCO 2025",
         "eventType": "conference", "impact": "high"},
        {"id": 2, "eventDate": "2025-07-08", "eventTitle": "Cardiac AE report",
         "eventType": "adverse_event", "impact": "high"},
        {"id": 3, "eventDate": "2025-08-10", "eventTitle": "Formulary change",
         "eventType": "payer_policy_change"},
        {"id": 4, "eventDate": "2024-12-10", "eventTitle": "Label update",
         "eventType": "regulatory"},
    ]


def hcp_payload(hcp_id=1):
    return {
        "id": hcp_id,
        "name": "Dr. Sarah Chen",
        "specialty": "Oncology",
        "hospital": "Memorial Cancer Center",
        "territory": "Northeast",
        "engagementLevel": "high",
        "switchRiskScore": 78,
        "switchRiskTier": "high",
        "switchRiskReasons": ["Young RCC patients switching"],
    }


def hypothesis_payloads():
    """One hypothesis per verdict, scored by the evidence service"""
    return [
        {
            "hypothesis": {"id": 1, "title": "Efficacy data at ASCO",
                           "causalChain": ["ASCO data", "Perceived efficacy gap", "Switch"]},
            "evidence": {
                "evidenceFound": [
                    {"source": "call_notes", "finding": "Cited ASCO PFS data", "supportsHypothesis": True,
                     "strength": "strong"},
                ],
                "finalConfidence": 85,
                "reasoning": "Timing matches the conference",
            },
        },
        {
            "hypothesis": {"id": 2, "title": "Cardiac safety concern"},
            "evidence": {
                "evidenceFound": [
                    {"source": "events", "finding": "AE report in July", "supportsHypothesis": True},
                    {"source": "call_notes", "finding": "No safety questions raised", "supportsHypothesis": False},
                ],
                "finalConfidence": 72,
            },
        },
        {"hypothesis": {"id": 3, "title": "Copay increase"}, "finalConfidence": 55},
        {
            "hypothesis": {"id": 4, "title": "Prior auth denials"},
            "evidence": {
                "evidenceFound": [
                    {"source": "payer", "finding": "One PA delay", "supportsHypothesis": True, "strength": "weak"},
                ],
                "finalConfidence": 20,
            },
        },
        {"hypothesis": {"id": 5, "title": "Rep coverage gap"}, "finalConfidence": 10},
    ]


@pytest.fixture
def patients():
    return [Patient.model_validate(item) for item in patient_payloads()]


@pytest.fixture
def history():
    return [PrescriptionHistoryRecord.model_validate(item) for item in history_payloads()]


@pytest.fixture
def events():
    return [ClinicalEvent.model_validate(item) for item in event_payloads()]


@pytest.fixture
def hypotheses():
    return [
        Hypothesis(id="1", title="Efficacy data at ASCO", evidence=[
            Evidence(source="call_notes", finding="Cited ASCO PFS data", supports_hypothesis=True),
        ]),
        Hypothesis(id="2", title="Cardiac safety concern", evidence=[
            Evidence(source="events", finding="AE report in July", supports_hypothesis=True),
            Evidence(source="call_notes", finding="No safety questions", supports_hypothesis=False),
        ]),
        Hypothesis(id="3", title="Copay increase"),
    ]


@pytest.fixture
def confidences():
    return {"1": 85, "2": 72, "3": 55}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ""

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; routes are keyed by (method, path)"""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.calls = []
        self.closed = False

    def request(self, method, url, json=None, timeout=None):
        path = urlparse(url).path
        self.calls.append((method, path, json))
        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, {"error": "Not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(json)
        return route

    def close(self):
        self.closed = True


def service_routes(hcp_id=1, investigation=None, nba=None):
    routes = {
        ("GET", f"/api/hcps/{hcp_id}"): FakeResponse(200, hcp_payload(hcp_id)),
        ("GET", f"/api/hcps/{hcp_id}/patients"): FakeResponse(200, patient_payloads()),
        ("GET", f"/api/hcps/{hcp_id}/events"): FakeResponse(200, event_payloads()),
        ("GET", f"/api/prescription-history/{hcp_id}"): FakeResponse(200, history_payloads()),
        ("GET", f"/api/hcps/{hcp_id}/prescription-trends"): FakeResponse(200, [
            {"month": "2025-06", "ourProduct": 40, "competitor": 10},
        ]),
        ("GET", f"/api/hcps/{hcp_id}/call-notes"): FakeResponse(200, [{"id": 1, "notes": "Asked about ASCO data"}]),
        ("GET", f"/api/hcps/{hcp_id}/payer-communications"): FakeResponse(404, {"error": "Not found"}),
        ("GET", f"/api/ai/investigation-results/{hcp_id}"): FakeResponse(
            200, investigation if investigation is not None else {"hasInvestigation": False}
        ),
    }
    if nba is not None:
        routes[("GET", f"/api/ai/nba-results/{hcp_id}")] = FakeResponse(200, nba)
    return routes


@pytest.fixture
def fake_session():
    return FakeSession(service_routes())


@pytest.fixture
def api_client(fake_session):
    return DashboardApiClient(base_url="http://dashboard.test", timeout=1, session=fake_session)


@pytest.fixture
def unreachable_error():
    return requests.ConnectionError("Connection refused")


@pytest.fixture
def patient_factory():
    return make_patient


@pytest.fixture
def result_payloads():
    return hypothesis_payloads()


@pytest.fixture
def routes_factory():
    return service_routes


@pytest.fixture
def client_factory():
    """Build a client over a FakeSession with the given routes"""
    def build(routes):
        session = FakeSession(routes)
        return DashboardApiClient(base_url="http://dashboard.test", timeout=1, session=session), session
    return build


@pytest.fixture
def response_factory():
    return FakeResponse
