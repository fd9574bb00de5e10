"""
workflow.py

Staged, human-gated causal investigation for one HCP.

    not_started -> observing -> investigating -> synthesizing -> confirmed

Transitions are forward-only and happen only through the named methods
below. Re-running an investigation means creating a new workflow (new
session), never rewinding this one.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from core.exceptions import InvalidTransition
from core.hypotheses import proven_hypotheses, ruled_out_hypotheses
from core.models import (
    ConfirmationRecord,
    Hypothesis,
    HypothesisResult,
    InvestigationResults,
    WorkflowStage,
)
from investigation.ledger import ConfirmationLedger

STAGE_ORDER = [
    WorkflowStage.not_started,
    WorkflowStage.observing,
    WorkflowStage.investigating,
    WorkflowStage.synthesizing,
    WorkflowStage.confirmed,
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InvestigationSession:
    """Owns the hypothesis set of one investigation run"""
    hcp_id: int
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    hypotheses: Tuple[Hypothesis, ...] = ()
    results: Tuple[HypothesisResult, ...] = ()
    signal_summary: Optional[str] = None
    human_input: Optional[str] = None

    @property
    def evidence_gathered(self) -> bool:
        return bool(self.results)


class InvestigationWorkflow:
    """Explicit state machine over an InvestigationSession"""

    def __init__(
        self,
        hcp_id: int,
        ledger: Optional[ConfirmationLedger] = None,
        session: Optional[InvestigationSession] = None
    ):
        self.session = session or InvestigationSession(hcp_id=hcp_id)
        self.ledger = ledger or ConfirmationLedger()
        self._stage = WorkflowStage.not_started
        self._signal_summary_ready = False
        self._lock = threading.RLock()
        self.updated_at = self.session.created_at

    @property
    def stage(self) -> WorkflowStage:
        return self._stage

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def is_confirmed(self) -> bool:
        return self._stage == WorkflowStage.confirmed

    @property
    def signal_summary_ready(self) -> bool:
        return self._signal_summary_ready

    def _require_stage(self, expected: WorkflowStage, action: str) -> None:
        if self._stage != expected:
            raise InvalidTransition(
                f"Cannot {action} while {self._stage.value}; expected {expected.value}"
            )

    def _advance(self, target: WorkflowStage) -> None:
        current_index = STAGE_ORDER.index(self._stage)
        if STAGE_ORDER.index(target) != current_index + 1:
            raise InvalidTransition(f"Cannot move from {self._stage.value} to {target.value}")
        print(f"[Workflow] HCP {self.session.hcp_id}: {self._stage.value} → {target.value}")
        self._stage = target
        self.updated_at = _now()

    # Stage 1: Observe
    def start(self) -> None:
        """Start investigation; no preconditions"""
        with self._lock:
            self._require_stage(WorkflowStage.not_started, "start investigation")
            self._advance(WorkflowStage.observing)

    def mark_signal_summary_ready(self, summary: Optional[str] = None) -> None:
        """The signal-correlation summary finished generating"""
        with self._lock:
            self._require_stage(WorkflowStage.observing, "record signal summary")
            self._signal_summary_ready = True
            if summary is not None:
                self.session.signal_summary = summary
            self.updated_at = _now()

    def complete_observation(self, human_input: Optional[str] = None) -> None:
        with self._lock:
            self._require_stage(WorkflowStage.observing, "complete observation")
            if not self._signal_summary_ready:
                raise InvalidTransition("Signal correlation summary has not finished generating")
            if human_input:
                self.session.human_input = human_input
            self._advance(WorkflowStage.investigating)

    # Stage 2: Investigate
    def register_hypotheses(self, hypotheses: Sequence[Hypothesis]) -> None:
        """Fix the hypothesis set generated in this stage"""
        with self._lock:
            self._require_stage(WorkflowStage.investigating, "register hypotheses")
            if self.session.evidence_gathered:
                raise InvalidTransition("Hypothesis set is frozen once evidence is gathered")
            ids = [h.id for h in hypotheses]
            if len(set(ids)) != len(ids):
                raise InvalidTransition("Hypothesis ids must be unique within a session")
            self.session.hypotheses = tuple(hypotheses)

    def record_verdicts(self, results: Sequence[HypothesisResult]) -> None:
        """
        Store evaluated hypotheses and move on to synthesis.

        When no hypothesis set was registered, the results define it. Otherwise
        the results must cover exactly the registered set.
        """
        with self._lock:
            self._require_stage(WorkflowStage.investigating, "record verdicts")
            if not results:
                raise InvalidTransition("No hypotheses were evaluated")

            result_ids = [r.id for r in results]
            if len(set(result_ids)) != len(result_ids):
                raise InvalidTransition("Duplicate hypothesis ids in evaluated results")

            if self.session.hypotheses:
                expected = {h.id for h in self.session.hypotheses}
                missing = sorted(expected - set(result_ids))
                extra = sorted(set(result_ids) - expected)
                if missing:
                    raise InvalidTransition(f"Verdicts missing for hypotheses: {', '.join(missing)}")
                if extra:
                    raise InvalidTransition(f"Verdicts for unknown hypotheses: {', '.join(extra)}")
                order = {h.id: i for i, h in enumerate(self.session.hypotheses)}
                results = sorted(results, key=lambda r: order[r.id])
            else:
                self.session.hypotheses = tuple(r.hypothesis for r in results)

            self.session.results = tuple(results)
            self._advance(WorkflowStage.synthesizing)

    # Stage 3: Synthesize -> Confirmed
    def approve(self, selected_ids: Iterable[str], notes: str = "") -> ConfirmationRecord:
        """
        Human approval. The only transition that writes to the ledger.

        Re-approving a confirmed session replaces the earlier selection.
        """
        with self._lock:
            if self._stage not in (WorkflowStage.synthesizing, WorkflowStage.confirmed):
                raise InvalidTransition(
                    f"Cannot confirm root causes while {self._stage.value}; finish synthesis first"
                )
            record = self.ledger.confirm(self.session, selected_ids, notes)
            if self._stage == WorkflowStage.synthesizing:
                self._advance(WorkflowStage.confirmed)
            else:
                self.updated_at = _now()
            return record

    def confirmed_hypotheses(self) -> List[HypothesisResult]:
        return self.ledger.confirmed_hypotheses(self.session_id)

    def snapshot(self) -> InvestigationResults:
        """Serialized workflow + ledger state"""
        with self._lock:
            results = list(self.session.results)
            record = self.ledger.get(self.session_id)
            return InvestigationResults(
                has_investigation=self._stage != WorkflowStage.not_started,
                session_id=self.session_id,
                stage=self._stage,
                all_hypotheses=results,
                proven_hypotheses=proven_hypotheses(results),
                ruled_out=ruled_out_hypotheses(results),
                confirmed_hypotheses=list(record.hypotheses) if record else [],
                is_confirmed=self.is_confirmed,
                sme_notes=record.sme_notes if record else "",
            )
