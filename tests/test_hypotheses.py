import math

import pytest

from core.exceptions import InvalidSelection
from core.hypotheses import (
    classify_verdict,
    default_preselection,
    evaluate,
    evaluate_all,
    proven_hypotheses,
    resolve_selection,
    result_from_payload,
    ruled_out_hypotheses,
)
from core.models import Evidence, Hypothesis, Verdict
from core.thresholds import confidence_tier, risk_badge

SUPPORTING = Evidence(source="call_notes", finding="supports", supports_hypothesis=True)
CONTRADICTING = Evidence(source="call_notes", finding="contradicts", supports_hypothesis=False)


@pytest.mark.parametrize("score, tier", [
    (100, "high"),
    (70, "high"),
    (69.9, "medium"),
    (40, "medium"),
    (39.9, "low"),
    (0, "low"),
    (None, "low"),
])
def test_confidence_tier(score, tier):
    assert confidence_tier(score) == tier


@pytest.mark.parametrize("tier, score, badge", [
    ("critical", 10, "high"),
    ("high", 10, "high"),
    ("low", 75, "high"),
    ("medium", 10, "medium"),
    ("low", 45, "medium"),
    ("low", 39, "low"),
    (None, None, "low"),
])
def test_risk_badge(tier, score, badge):
    assert risk_badge(tier, score) == badge


@pytest.mark.parametrize("confidence, evidence, verdict", [
    (85, [SUPPORTING], Verdict.proven),
    (70, [], Verdict.proven),
    (85, [SUPPORTING, CONTRADICTING], Verdict.likely),
    (55, [SUPPORTING], Verdict.possible),
    (40, [CONTRADICTING], Verdict.possible),
    (20, [SUPPORTING], Verdict.unlikely),
    (20, [CONTRADICTING], Verdict.disproven),
    (0, [], Verdict.disproven),
])
def test_classify_verdict(confidence, evidence, verdict):
    assert classify_verdict(confidence, evidence) is verdict


def test_evaluate_sets_counts_as_proven():
    hypothesis = Hypothesis(id="1", title="Efficacy", evidence=[SUPPORTING, CONTRADICTING])

    assert evaluate(hypothesis, 80).counts_as_proven is True
    assert evaluate(hypothesis, 80).verdict is Verdict.likely
    assert evaluate(hypothesis, 60).counts_as_proven is False


@pytest.mark.parametrize("raw, expected", [
    (150, 100.0),
    (-5, 0.0),
    ("72", 72.0),
    (None, 0.0),
    (math.nan, 0.0),
])
def test_evaluate_clamps_confidence(raw, expected):
    result = evaluate(Hypothesis(id="1", title="t"), raw)
    assert result.final_confidence == expected


def test_evaluate_with_explicit_evidence_does_not_mutate_hypothesis():
    hypothesis = Hypothesis(id="1", title="t")
    result = evaluate(hypothesis, 90, evidence=[CONTRADICTING])

    assert result.verdict is Verdict.likely
    assert result.hypothesis.evidence == [CONTRADICTING]
    assert hypothesis.evidence == []


def test_evaluate_all_preserves_order_and_skips_unscored(hypotheses, confidences):
    del confidences["2"]
    results = evaluate_all(hypotheses, confidences, reasoning={"1": "ASCO timing"})

    assert [r.id for r in results] == ["1", "3"]
    assert results[0].reasoning == "ASCO timing"
    assert results[1].reasoning == ""


def test_proven_ruled_out_and_preselection(result_payloads):
    results = [result_from_payload(item) for item in result_payloads]

    assert [r.verdict for r in results] == [
        Verdict.proven, Verdict.likely, Verdict.possible, Verdict.unlikely, Verdict.disproven,
    ]
    assert [r.id for r in proven_hypotheses(results)] == ["1", "2"]
    assert [r.id for r in ruled_out_hypotheses(results)] == ["4", "5"]
    assert default_preselection(results) == ["1", "2"]


def test_result_from_payload_nested_shape(result_payloads):
    result = result_from_payload(result_payloads[0])

    assert result.id == "1"
    assert result.final_confidence == 85
    assert result.reasoning == "Timing matches the conference"
    assert result.hypothesis.causal_chain == ["ASCO data", "Perceived efficacy gap", "Switch"]
    assert result.hypothesis.evidence[0].supports_hypothesis is True


def test_result_from_payload_recomputes_verdict():
    payload = {"hypothesis": {"id": "9", "title": "t"}, "finalConfidence": 30, "verdict": "proven"}
    assert result_from_payload(payload).verdict is Verdict.disproven


def test_resolve_selection_in_selection_order(result_payloads):
    results = [result_from_payload(item) for item in result_payloads]
    selected = resolve_selection(results, ["3", 1, "3"])
    assert [r.id for r in selected] == ["3", "1"]


def test_resolve_selection_rejects_empty(result_payloads):
    results = [result_from_payload(item) for item in result_payloads]
    with pytest.raises(InvalidSelection):
        resolve_selection(results, [])


def test_resolve_selection_rejects_unknown_ids(result_payloads):
    results = [result_from_payload(item) for item in result_payloads]
    with pytest.raises(InvalidSelection) as excinfo:
        resolve_selection(results, ["1", "42"])
    assert excinfo.value.unknown_ids == ["42"]
