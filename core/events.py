"""
Overlay alignment of point-in-time clinical/payer events onto timeline months.
"""
from datetime import date
from typing import List, Optional, Sequence, Union

from core.models import AlignedEvent, ClinicalEvent, MonthPoint
from core.month_keys import month_key, month_start


def align_events(events: Sequence[ClinicalEvent], timeline: Sequence[MonthPoint]) -> List[AlignedEvent]:
    """
    Pair each event with the index of its month in the timeline.

    Events whose month is outside the timeline are dropped. Several events
    may share one month index. Input order is preserved.
    """
    index_by_month = {point.month: index for index, point in enumerate(timeline)}

    aligned = []
    for event in events:
        key = month_key(event.event_date)
        if key in index_by_month:
            aligned.append(AlignedEvent(event=event, month_index=index_by_month[key], month=key))

    return aligned


def events_of_type(events: Sequence[ClinicalEvent], event_type: str) -> List[ClinicalEvent]:
    """Events with the given type tag, earliest first"""
    matching = [event for event in events if event.event_type == event_type]
    return sorted(matching, key=lambda event: event.event_date)


def first_event_of_type(events: Sequence[ClinicalEvent], event_type: str) -> Optional[ClinicalEvent]:
    matching = events_of_type(events, event_type)
    return matching[0] if matching else None


def timeline_position(target: Union[date, str], start_month: str, end_month: str) -> float:
    """
    Horizontal position of a date between two month starts, in percent.

    Clamped to [0, 100]. A window of zero length puts everything at 0.
    """
    if isinstance(target, str):
        target = date.fromisoformat(target[:10])

    start = month_start(start_month)
    end = month_start(end_month)
    total_days = (end - start).days
    if total_days <= 0:
        return 0.0

    position = (target - start).days / total_days * 100
    return max(0.0, min(100.0, position))
