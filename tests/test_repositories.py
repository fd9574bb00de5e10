from datetime import date

import pytest

from core.exceptions import FetchFailure
from core.models import Verdict, WorkflowStage
from core.repositories.hcp_repository import HcpRepository
from core.repositories.investigation_repository import InvestigationRepository, results_from_payload


def test_get_hcp(api_client):
    hcp = HcpRepository(api_client).get_hcp(1)
    assert hcp.name == "Dr. Sarah Chen"
    assert hcp.switch_risk_score == 78
    assert hcp.switch_risk_tier == "high"


def test_get_patients_parses_timestamps(api_client):
    patients = HcpRepository(api_client).get_patients(1)
    assert len(patients) == 12
    assert patients[0].switched_date == date(2025, 6, 16)
    assert patients[-1].switched_date is None


def test_get_prescription_history(api_client):
    history = HcpRepository(api_client).get_prescription_history(1)
    assert len(history) == 20
    assert history[0].is_our_product is True
    assert history[1].is_our_product is False


def test_malformed_payload_is_fetch_failure(client_factory, response_factory):
    client, _ = client_factory({
        ("GET", "/api/hcps/1/patients"): response_factory(200, [{"patientCode": "P1"}]),
    })
    with pytest.raises(FetchFailure):
        HcpRepository(client).get_patients(1)


def test_non_list_payload_is_fetch_failure(client_factory, response_factory):
    client, _ = client_factory({
        ("GET", "/api/hcps/1/events"): response_factory(200, {"events": []}),
    })
    with pytest.raises(FetchFailure):
        HcpRepository(client).get_events(1)


def test_invalid_month_key_is_fetch_failure(client_factory, response_factory):
    client, _ = client_factory({
        ("GET", "/api/prescription-history/1"): response_factory(200, [{"month": "July", "productName": "Onco-Pro"}]),
    })
    with pytest.raises(FetchFailure):
        HcpRepository(client).get_prescription_history(1)


def test_fetch_hcp_bundle(api_client, fake_session):
    bundle = HcpRepository(api_client).fetch_hcp_bundle(1, max_workers=3)

    assert bundle.hcp.id == 1
    assert len(bundle.patients) == 12
    assert len(bundle.events) == 4
    assert len(bundle.prescription_history) == 20
    assert bundle.prescription_trends == [{"month": "2025-06", "ourProduct": 40, "competitor": 10}]
    assert len(bundle.call_notes) == 1
    assert bundle.payer_communications == []
    assert len(fake_session.calls) == 7


def test_fetch_hcp_bundle_propagates_failure(client_factory, routes_factory, response_factory):
    routes = routes_factory()
    routes[("GET", "/api/hcps/1/events")] = response_factory(500, {"error": "boom"})
    client, _ = client_factory(routes)

    with pytest.raises(FetchFailure) as excinfo:
        HcpRepository(client).fetch_hcp_bundle(1)
    assert excinfo.value.path == "/api/hcps/1/events"


def test_results_from_payload_recomputes_sets(result_payloads):
    results = results_from_payload({
        "hasInvestigation": True,
        "session": {"id": 12},
        "allHypotheses": result_payloads,
        # Stale server-side classification is ignored
        "provenHypotheses": result_payloads[:4],
        "confirmedHypotheses": ["1", {"id": "3"}],
        "isConfirmed": True,
        "smeNotes": "MSL agrees",
    })

    assert results.session_id == "12"
    assert results.stage is WorkflowStage.confirmed
    assert [r.id for r in results.proven_hypotheses] == ["1", "2"]
    assert [r.id for r in results.ruled_out] == ["4", "5"]
    assert [r.id for r in results.confirmed_hypotheses] == ["1", "3"]
    assert results.sme_notes == "MSL agrees"


def test_results_from_payload_accepts_full_confirmed_objects(result_payloads):
    results = results_from_payload({
        "investigation": {
            "hasInvestigation": True,
            "allHypotheses": result_payloads,
            "confirmedHypotheses": [result_payloads[2]],
            "isConfirmed": True,
        }
    })
    assert [r.id for r in results.confirmed_hypotheses] == ["3"]
    assert results.confirmed_hypotheses[0].verdict is Verdict.possible


def test_results_from_payload_without_investigation():
    results = results_from_payload({"hasInvestigation": False})
    assert results.has_investigation is False
    assert results.stage is WorkflowStage.not_started
    assert results.all_hypotheses == []


def test_unconfirmed_investigation_is_synthesizing(result_payloads):
    results = results_from_payload({"hasInvestigation": True, "allHypotheses": result_payloads})
    assert results.stage is WorkflowStage.synthesizing
    assert results.is_confirmed is False


def test_confirm_posts_selection(client_factory, response_factory):
    client, session = client_factory({
        ("POST", "/api/ai/confirm-investigation/1"): lambda body: response_factory(
            200, {"success": True, "confirmedCount": len(body["confirmedHypotheses"])}
        ),
    })
    count = InvestigationRepository(client).confirm(1, ["1", "2"], "notes")

    assert count == 2
    assert session.calls[-1][2] == {"confirmedHypotheses": ["1", "2"], "smeNotes": "notes"}


def test_start_investigation(client_factory, response_factory, result_payloads):
    client, session = client_factory({
        ("POST", "/api/ai/investigate/1"): response_factory(200, {
            "hasInvestigation": True, "allHypotheses": result_payloads,
        }),
    })
    results = InvestigationRepository(client).start_investigation(1)
    assert results.has_investigation is True
    assert len(results.all_hypotheses) == 5
    assert session.calls[-1][0] == "POST"


def test_confirmed_ids_missing_from_results_are_reported(result_payloads, capsys):
    results = results_from_payload({
        "hasInvestigation": True,
        "allHypotheses": result_payloads,
        "confirmedHypotheses": ["1", "42", {"id": "77"}],
        "isConfirmed": True,
    })

    assert [r.id for r in results.confirmed_hypotheses] == ["1"]
    output = capsys.readouterr().out
    assert "42" in output
    assert "77" in output
