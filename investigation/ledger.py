"""
ConfirmationLedger: which hypotheses a human reviewer accepted as root causes.

One record per investigation session. A new confirmation replaces the
previous one wholesale; writers for the same session are serialized and the
later call wins.
"""
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from core.hypotheses import resolve_selection
from core.models import ConfirmationRecord, HypothesisResult

if TYPE_CHECKING:
    from investigation.workflow import InvestigationSession


class ConfirmationLedger:
    """In-process ledger keyed by investigation session id"""

    def __init__(self):
        self._records: Dict[str, ConfirmationRecord] = {}
        self._session_locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            if session_id not in self._session_locks:
                self._session_locks[session_id] = threading.Lock()
            return self._session_locks[session_id]

    def confirm(
        self,
        session: "InvestigationSession",
        selected_ids: Iterable[str],
        notes: str = ""
    ) -> ConfirmationRecord:
        """
        Record the reviewer's confirmed root causes for a session.

        Proven verdicts are not required; reviewers may confirm a "possible"
        hypothesis. Validation happens before anything is written.
        """
        confirmed = resolve_selection(session.results, selected_ids)

        with self._lock_for(session.session_id):
            record = ConfirmationRecord(
                session_id=session.session_id,
                hypothesis_ids=tuple(result.id for result in confirmed),
                hypotheses=confirmed,
                sme_notes=notes or "",
                confirmed_at=datetime.now(timezone.utc),
            )
            self._records[session.session_id] = record

        print(f"[Ledger] ✓ Session {session.session_id}: {len(confirmed)} root cause(s) confirmed")
        return record

    def get(self, session_id: str) -> Optional[ConfirmationRecord]:
        return self._records.get(session_id)

    def confirmed_hypotheses(self, session_id: str) -> List[HypothesisResult]:
        record = self._records.get(session_id)
        return list(record.hypotheses) if record else []

    def clear(self, session_id: str) -> None:
        """Drop the record. The session lock is kept so later writers stay serialized."""
        with self._lock_for(session_id):
            self._records.pop(session_id, None)
