"""
hypotheses.py

Verdict classification for causal hypotheses.

Confidence scores come from the evidence-scoring service; this module only
maps them onto verdict tiers using the shared threshold table and decides
which hypotheses qualify as proven root causes.

    high tier   (>= 70)     proven / likely      -> counts as proven
    medium tier ([40, 70))  possible             -> never auto-qualifies
    low tier    (< 40)      unlikely / disproven -> ruled out

Inside the high tier a hypothesis is "likely" rather than "proven" when any
evidence contradicts it. Inside the low tier it is "disproven" when no
evidence supports it at all.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.exceptions import InvalidSelection
from core.models import Evidence, Hypothesis, HypothesisResult, Verdict
from core.thresholds import confidence_tier

PROVEN_VERDICTS = (Verdict.proven, Verdict.likely)
RULED_OUT_VERDICTS = (Verdict.unlikely, Verdict.disproven)


def _clamp_confidence(value: Any) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def classify_verdict(final_confidence: float, evidence: Sequence[Evidence] = ()) -> Verdict:
    tier = confidence_tier(final_confidence)

    if tier == "high":
        if any(not item.supports_hypothesis for item in evidence):
            return Verdict.likely
        return Verdict.proven

    if tier == "medium":
        return Verdict.possible

    if any(item.supports_hypothesis for item in evidence):
        return Verdict.unlikely
    return Verdict.disproven


def evaluate(
    hypothesis: Hypothesis,
    final_confidence: Any,
    evidence: Optional[Sequence[Evidence]] = None,
    reasoning: str = ""
) -> HypothesisResult:
    """
    Classify one hypothesis.

    Args:
        hypothesis: The hypothesis under test
        final_confidence: Externally computed 0-100 score (clamped)
        evidence: Evidence to weigh; defaults to the hypothesis's own list
        reasoning: Opaque narrative from the scoring service

    Returns:
        HypothesisResult with verdict and whether it counts as proven
    """
    if evidence is None:
        evidence = hypothesis.evidence
    else:
        hypothesis = hypothesis.model_copy(update={"evidence": list(evidence)})

    confidence = _clamp_confidence(final_confidence)
    verdict = classify_verdict(confidence, evidence)

    return HypothesisResult(
        hypothesis=hypothesis,
        final_confidence=confidence,
        verdict=verdict,
        counts_as_proven=verdict in PROVEN_VERDICTS,
        reasoning=reasoning,
    )


def evaluate_all(
    hypotheses: Sequence[Hypothesis],
    confidences: Mapping[str, Any],
    reasoning: Optional[Mapping[str, str]] = None
) -> List[HypothesisResult]:
    """Evaluate every hypothesis that has a confidence score, preserving order"""
    reasoning = reasoning or {}
    return [
        evaluate(h, confidences[h.id], reasoning=reasoning.get(h.id, ""))
        for h in hypotheses
        if h.id in confidences
    ]


def proven_hypotheses(results: Sequence[HypothesisResult]) -> List[HypothesisResult]:
    return [r for r in results if r.counts_as_proven]


def ruled_out_hypotheses(results: Sequence[HypothesisResult]) -> List[HypothesisResult]:
    return [r for r in results if r.verdict in RULED_OUT_VERDICTS]


def default_preselection(results: Sequence[HypothesisResult]) -> List[str]:
    """Ids the confirmation form ticks by default: the proven set only"""
    return [r.id for r in proven_hypotheses(results)]


def result_from_payload(item: Dict[str, Any]) -> HypothesisResult:
    """
    Parse one hypothesis result from the data service.

    Accepts the nested shape ({"hypothesis": {...}, "evidence": {"evidenceFound",
    "finalConfidence", "reasoning", ...}}) and the flat shape
    ({"hypothesis": {...}, "finalConfidence": ...}). The verdict is always
    recomputed locally from the confidence so every tier decision goes
    through the shared thresholds.
    """
    hypothesis_data = dict(item.get("hypothesis") or {})
    evidence_block = item.get("evidence")

    if isinstance(evidence_block, dict):
        confidence = evidence_block.get("finalConfidence", 0)
        reasoning = evidence_block.get("reasoning", "") or ""
        hypothesis_data["evidence"] = evidence_block.get("evidenceFound", [])
    else:
        confidence = item.get("finalConfidence", item.get("final_confidence", 0))
        reasoning = item.get("reasoning", "") or ""

    return evaluate(Hypothesis.model_validate(hypothesis_data), confidence, reasoning=reasoning)


def resolve_selection(results: Sequence[HypothesisResult], selected_ids: Iterable[Any]) -> List[HypothesisResult]:
    """
    Map reviewer-selected ids onto evaluated hypotheses, in selection order.

    Raises:
        InvalidSelection: nothing selected, or any id not among `results`
    """
    selected = list(dict.fromkeys(str(hypothesis_id) for hypothesis_id in selected_ids))
    if not selected:
        raise InvalidSelection("Select at least one hypothesis to confirm")

    by_id = {result.id: result for result in results}
    unknown = [hypothesis_id for hypothesis_id in selected if hypothesis_id not in by_id]
    if unknown:
        raise InvalidSelection(
            f"Unknown hypothesis ids: {', '.join(unknown)}",
            unknown_ids=unknown,
        )

    return [by_id[hypothesis_id] for hypothesis_id in selected]
