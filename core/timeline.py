"""
timeline.py

Cohort survival timeline: month-by-month count of patients still on the
index product, stacked per cohort.

Each month is sampled at its mid-month cutoff (the 15th). A patient survives
month m when they have not switched, or switched strictly after m's cutoff:
a switch on 2025-07-15 removes the patient from July onward, while a switch
on 2025-06-16 still counts them in June. Once a patient drops out they stay
out, so every cohort series is non-increasing whatever predicate is supplied.
"""

from datetime import date
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from core.cohorts import discover_cohorts
from core.models import MonthPoint, Patient, PrescriptionHistoryRecord
from core.month_keys import month_label, month_start

StillOnProduct = Callable[[Patient, date], bool]

SURVIVAL_CUTOFF_DAY = 15


def survival_cutoff(month: str) -> date:
    """Date a month is sampled at"""
    return month_start(month).replace(day=SURVIVAL_CUTOFF_DAY)


def is_survivor(patient: Patient, cutoff: date) -> bool:
    """Default "still on product" predicate"""
    return patient.switched_date is None or patient.switched_date > cutoff


def target_product_months(
    history: Sequence[PrescriptionHistoryRecord],
    target_product: str
) -> List[str]:
    """Ascending, de-duplicated month keys that have a record for the product"""
    if not history:
        return []

    df = pd.DataFrame([{"month": r.month, "product_name": r.product_name} for r in history])
    months = df.loc[df["product_name"] == target_product, "month"]

    return months.drop_duplicates().sort_values().tolist()


def build_timeline(
    patients: Sequence[Patient],
    history: Sequence[PrescriptionHistoryRecord],
    target_product: str,
    still_on_product: Optional[StillOnProduct] = None
) -> List[MonthPoint]:
    """
    Build the stacked survival series for one product.

    Args:
        patients: Patients of one HCP (not mutated)
        history: Prescription history records (not mutated)
        target_product: Product name whose months define the timeline
        still_on_product: Optional predicate (patient, cutoff date) -> bool

    Returns:
        MonthPoints in ascending month order. Empty when the product has no
        history, which callers render as "no data".
    """
    months = target_product_months(history, target_product)
    if not months:
        return []

    predicate = still_on_product or is_survivor
    cohorts = discover_cohorts(patients)
    exited = set()

    points = []
    for month in months:
        cutoff = survival_cutoff(month)
        counts = {cohort: 0 for cohort in cohorts}

        for index, patient in enumerate(patients):
            if index in exited:
                continue
            if predicate(patient, cutoff):
                counts[patient.cohort] += 1
            else:
                exited.add(index)

        points.append(MonthPoint(month=month, counts=counts, total=sum(counts.values())))

    return points


def timeline_to_frame(timeline: Sequence[MonthPoint]) -> pd.DataFrame:
    """
    Wide DataFrame for charting: one row per month, one column per cohort,
    plus a `total` column.
    """
    if not timeline:
        return pd.DataFrame(columns=["month", "total"])

    rows = [{"month": point.month, **point.counts, "total": point.total} for point in timeline]
    return pd.DataFrame(rows)


def cohort_series(timeline: Sequence[MonthPoint], cohort: str) -> List[int]:
    """Survivor counts of one cohort across the timeline"""
    return [point.counts.get(cohort, 0) for point in timeline]


def axis_ticks(timeline: Sequence[MonthPoint]) -> Tuple[List[str], List[str]]:
    """
    Tick values (month keys) and short tick labels for a categorical month axis.

    Labels repeat across years, so charts must place points by key. January
    and the first month carry the year to keep the axis readable.
    """
    values = [point.month for point in timeline]
    labels = []
    for index, key in enumerate(values):
        label = month_label(key)
        if index == 0 or key.endswith("-01"):
            label = f"{label} {key[:4]}"
        labels.append(label)
    return values, labels
