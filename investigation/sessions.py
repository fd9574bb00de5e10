from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from core.config import get_session_retention_days
from investigation.ledger import ConfirmationLedger
from investigation.workflow import InvestigationWorkflow


class SessionRegistry:
    """Latest investigation workflow per HCP, sharing one ledger"""

    def __init__(self, ledger: Optional[ConfirmationLedger] = None):
        self.ledger = ledger or ConfirmationLedger()
        self._workflows: Dict[int, InvestigationWorkflow] = {}

    def start_new(self, hcp_id: int) -> InvestigationWorkflow:
        """
        Begin a fresh investigation for an HCP.

        Any previous session is discarded along with its confirmation.
        """
        previous = self._workflows.get(hcp_id)
        if previous is not None:
            self.ledger.clear(previous.session_id)
            print(f"[Sessions] Replacing session {previous.session_id} for HCP {hcp_id}")

        workflow = InvestigationWorkflow(hcp_id, ledger=self.ledger)
        workflow.start()
        self._workflows[hcp_id] = workflow
        return workflow

    def get(self, hcp_id: int) -> Optional[InvestigationWorkflow]:
        return self._workflows.get(hcp_id)

    def cleanup_old_sessions(self, days_old: Optional[int] = None) -> dict:
        """
        Drop sessions untouched for longer than `days_old` days

        Returns:
            Dict with cleanup stats
        """
        days_old = get_session_retention_days() if days_old is None else days_old
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)

        stale = [hcp_id for hcp_id, wf in self._workflows.items() if wf.updated_at < cutoff]
        for hcp_id in stale:
            workflow = self._workflows.pop(hcp_id)
            self.ledger.clear(workflow.session_id)

        print(f"✓ Cleaned up {len(stale)} old investigation sessions")
        return {
            'success': True,
            'sessions_deleted': len(stale),
            'cutoff_date': cutoff.isoformat()
        }


# Singleton instance
_session_registry = None


def get_session_registry() -> SessionRegistry:
    """Get or create singleton session registry"""
    global _session_registry

    if _session_registry is None:
        _session_registry = SessionRegistry()

    return _session_registry
