import threading

import pytest

from core.exceptions import InvalidSelection
from core.hypotheses import evaluate_all
from investigation.ledger import ConfirmationLedger
from investigation.workflow import InvestigationSession


@pytest.fixture
def session(hypotheses, confidences):
    results = evaluate_all(hypotheses, confidences)
    return InvestigationSession(hcp_id=1, hypotheses=tuple(hypotheses), results=tuple(results))


def test_confirm_records_selection(session):
    ledger = ConfirmationLedger()
    record = ledger.confirm(session, ["2", "1"], notes="Reviewed with medical affairs")

    assert record.session_id == session.session_id
    assert record.hypothesis_ids == ("2", "1")
    assert record.sme_notes == "Reviewed with medical affairs"
    assert ledger.get(session.session_id) == record
    assert [r.id for r in ledger.confirmed_hypotheses(session.session_id)] == ["2", "1"]


def test_second_confirmation_overwrites_first(session):
    ledger = ConfirmationLedger()
    ledger.confirm(session, ["1", "2"])
    ledger.confirm(session, ["3"])

    assert ledger.get(session.session_id).hypothesis_ids == ("3",)
    assert [r.id for r in ledger.confirmed_hypotheses(session.session_id)] == ["3"]


def test_empty_selection_is_rejected_without_write(session):
    ledger = ConfirmationLedger()
    with pytest.raises(InvalidSelection):
        ledger.confirm(session, [])
    assert ledger.get(session.session_id) is None


def test_unknown_ids_are_rejected_without_write(session):
    ledger = ConfirmationLedger()
    ledger.confirm(session, ["1"])

    with pytest.raises(InvalidSelection) as excinfo:
        ledger.confirm(session, ["1", "nope"])

    assert excinfo.value.unknown_ids == ["nope"]
    assert ledger.get(session.session_id).hypothesis_ids == ("1",)


def test_clear(session):
    ledger = ConfirmationLedger()
    ledger.confirm(session, ["1"])
    ledger.clear(session.session_id)
    assert ledger.get(session.session_id) is None
    assert ledger.confirmed_hypotheses(session.session_id) == []


def test_concurrent_confirms_never_merge(session):
    ledger = ConfirmationLedger()
    selections = [["1"], ["2"], ["3"], ["1", "3"]] * 5

    threads = [threading.Thread(target=ledger.confirm, args=(session, ids)) for ids in selections]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    recorded = list(ledger.get(session.session_id).hypothesis_ids)
    assert recorded in selections


def test_clear_keeps_session_lock(session):
    ledger = ConfirmationLedger()
    ledger.confirm(session, ["1"])
    lock = ledger._lock_for(session.session_id)

    ledger.clear(session.session_id)

    assert ledger._lock_for(session.session_id) is lock
    ledger.confirm(session, ["2"])
    assert ledger.get(session.session_id).hypothesis_ids == ("2",)
