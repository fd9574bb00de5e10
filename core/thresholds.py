"""
Shared confidence/risk threshold table.

Hypothesis verdict tiers and the HCP risk badge both read this table so the
two call sites can never drift apart.
"""
from typing import Optional

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40

# (tier, inclusive lower bound), highest first
TIER_THRESHOLDS = [
    ("high", HIGH_THRESHOLD),
    ("medium", MEDIUM_THRESHOLD),
    ("low", float("-inf")),
]


def confidence_tier(score: Optional[float]) -> str:
    """Map a 0-100 score onto high/medium/low"""
    if score is None:
        return "low"
    for tier, lower_bound in TIER_THRESHOLDS:
        if score >= lower_bound:
            return tier
    return "low"


def risk_badge(tier: Optional[str], score: Optional[float]) -> str:
    """
    Badge level for an HCP's switch risk.

    The service-assigned tier can only raise the badge above what the
    score alone would give.
    """
    tier = (tier or "").lower()
    score_tier = confidence_tier(score)

    if tier in ("critical", "high") or score_tier == "high":
        return "high"
    if tier == "medium" or score_tier == "medium":
        return "medium"
    return "low"
