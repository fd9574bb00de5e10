"""
cohorts.py

Cohort discovery and per-cohort switching summaries.

Cohorts are an open set: any label present on a patient is a cohort. Colors
are keyed on the label itself (stable hash), so a cohort keeps its color no
matter which other cohorts share the chart.
"""

import hashlib
import math
from typing import Dict, Iterable, List, Optional

import pandas as pd

from core.models import CohortSwitchingSummary, Patient

COHORT_PALETTE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
]

# Display names for labels the data service is known to emit
KNOWN_COHORT_LABELS = {
    "young_rcc": "Young RCC",
    "cv_risk": "CV Risk",
    "stable": "Stable",
    "high_copay": "High Copay",
    "pa_denied": "PA Denied",
    "fulfillment_delay": "Fulfillment Delay",
    "smooth_access": "Smooth Access",
}


def discover_cohorts(patients: Iterable[Patient]) -> List[str]:
    """Distinct cohort labels present in the patient set, lexicographically sorted"""
    return sorted({patient.cohort for patient in patients})


def cohort_color(cohort: str, palette: Optional[List[str]] = None) -> str:
    """Palette color for a cohort, independent of the other cohorts present"""
    palette = palette or COHORT_PALETTE
    digest = hashlib.sha256(cohort.encode("utf-8")).hexdigest()
    return palette[int(digest[:8], 16) % len(palette)]


def cohort_label(cohort: str) -> str:
    if cohort in KNOWN_COHORT_LABELS:
        return KNOWN_COHORT_LABELS[cohort]
    return cohort.replace("_", " ").strip().title()


def _percent(part: int, whole: int) -> int:
    """Half-up rounded percentage"""
    if not whole:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def _switch_period(first, last) -> str:
    if first is None or last is None:
        return "N/A"
    first_month = first.strftime("%b")
    last_month = last.strftime("%b")
    return first_month if first_month == last_month else f"{first_month}-{last_month}"


def summarize_cohort_switching(patients: List[Patient]) -> Dict[str, CohortSwitchingSummary]:
    """
    Per-cohort switching breakdown.

    Returns a dict keyed by cohort (in discovery order) with totals, switch
    counts, rounded switch rate and the month span over which switches
    happened.
    """
    if not patients:
        return {}

    df = pd.DataFrame(
        [{"cohort": p.cohort, "switched_date": p.switched_date} for p in patients]
    )

    summaries = {}
    for cohort in discover_cohorts(patients):
        cohort_df = df[df["cohort"] == cohort]
        switch_dates = sorted(d for d in cohort_df["switched_date"] if d is not None and not pd.isna(d))

        total = len(cohort_df)
        switched = len(switch_dates)
        first_switch = switch_dates[0] if switch_dates else None
        last_switch = switch_dates[-1] if switch_dates else None

        summaries[cohort] = CohortSwitchingSummary(
            cohort=cohort,
            total_patients=total,
            switched=switched,
            retained=total - switched,
            switch_rate=_percent(switched, total),
            first_switch=first_switch,
            last_switch=last_switch,
            switch_period=_switch_period(first_switch, last_switch),
        )

    return summaries


def overall_switch_rate(patients: List[Patient]) -> int:
    """Rounded percent of patients who have left the index product"""
    if not patients:
        return 0
    switched = sum(1 for p in patients if p.switched_date is not None)
    return _percent(switched, len(patients))
