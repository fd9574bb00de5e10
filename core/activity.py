"""
Time-driven reveal of a stage's pre-computed activity log.

Visibility is a pure function of (log, elapsed seconds): the log is never
mutated, so pausing, resuming or re-entering a stage rebuilds the same view
from elapsed time alone.
"""
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.config import get_activity_stage_seconds


@dataclass(frozen=True)
class Activity:
    offset_seconds: float
    agent: str
    message: str
    kind: str = "thought"


@dataclass(frozen=True)
class ActivityReveal:
    visible: Tuple[Activity, ...]
    progress: float
    complete: bool


def activity_from_payload(item: Dict[str, Any]) -> Activity:
    return Activity(
        offset_seconds=float(item.get("offsetSeconds", item.get("offset_seconds", 0)) or 0),
        agent=item.get("agent", "orchestrator"),
        message=item.get("message") or item.get("content") or "",
        kind=item.get("kind", item.get("type", "thought")),
    )


def reveal_activities(activity_log: Sequence[Activity], elapsed_seconds: float) -> ActivityReveal:
    """
    Activities visible after `elapsed_seconds`, in offset order.

    Progress runs from 0 to 100 against the last activity's offset and is
    pinned to 100 once everything is visible.
    """
    ordered = sorted(activity_log, key=lambda activity: activity.offset_seconds)
    if not ordered:
        return ActivityReveal(visible=(), progress=100.0, complete=True)

    elapsed = max(0.0, elapsed_seconds)
    visible = tuple(a for a in ordered if a.offset_seconds <= elapsed)

    if len(visible) == len(ordered):
        return ActivityReveal(visible=visible, progress=100.0, complete=True)

    duration = ordered[-1].offset_seconds
    progress = min(99.0, elapsed / duration * 100) if duration > 0 else 0.0
    return ActivityReveal(visible=visible, progress=progress, complete=False)


@dataclass
class ActivityTimer:
    """
    View-level stopwatch for one stage visit.

    Stopping only freezes the clock; the fetched log is untouched.
    """
    activity_log: Sequence[Activity]
    clock: Callable[[], float] = time.monotonic
    started_at: Optional[float] = None
    stopped_at: Optional[float] = None

    def restart(self) -> None:
        self.started_at = self.clock()
        self.stopped_at = None

    def stop(self) -> None:
        if self.started_at is not None and self.stopped_at is None:
            self.stopped_at = self.clock()

    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.stopped_at if self.stopped_at is not None else self.clock()
        return end - self.started_at

    def poll(self) -> ActivityReveal:
        return reveal_activities(self.activity_log, self.elapsed())


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def activity_log_from_session(session: Dict[str, Any]) -> List[Activity]:
    """
    Build a log from a recorded agent session's thoughts and actions.

    Offsets are seconds since the earliest timestamp; entries without a
    parseable timestamp are skipped.
    """
    entries = []
    for thought in session.get("thoughts") or []:
        entries.append((thought.get("timestamp"), thought.get("agentType", "orchestrator"),
                        thought.get("content", ""), "thought"))
    for action in session.get("actions") or []:
        entries.append((action.get("executedAt"), action.get("agentType", "orchestrator"),
                        action.get("actionDescription", ""), "action"))

    stamped = [(_parse_timestamp(ts), agent, message, kind) for ts, agent, message, kind in entries]
    stamped = [entry for entry in stamped if entry[0] is not None]
    if not stamped:
        return []

    origin = min(entry[0] for entry in stamped)
    return sorted(
        (Activity((ts - origin).total_seconds(), agent, message, kind) for ts, agent, message, kind in stamped),
        key=lambda activity: activity.offset_seconds,
    )


def spread_activities(
    messages: Sequence[Tuple[str, str]],
    stage_seconds: Optional[float] = None
) -> List[Activity]:
    """Evenly space (agent, message) pairs over one stage's reveal window"""
    if not messages:
        return []
    stage_seconds = get_activity_stage_seconds() if stage_seconds is None else stage_seconds
    step = stage_seconds / len(messages)
    return [
        Activity(offset_seconds=(index + 1) * step, agent=agent, message=message)
        for index, (agent, message) in enumerate(messages)
    ]
