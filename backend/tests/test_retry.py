import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from mocards.errors import ConflictError, NotFoundError, TransientStoreError
from mocards.services import retry


class FakeSession:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


def _locked():
    return OperationalError("UPDATE cards", {}, Exception("database is locked"))


@pytest.fixture
def sleeps(monkeypatch):
    delays = []
    monkeypatch.setattr(retry.time, "sleep", delays.append)
    return delays


def test_backoff_grows_exponentially():
    for attempt, base in enumerate([0.1, 0.2, 0.4]):
        delay = retry.backoff_delay(attempt, 0.1)
        assert base <= delay <= base + base / 10 + 1e-9


def test_transient_failure_is_retried(sleeps):
    db = FakeSession()
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        return "done"

    assert retry.run_with_retry(db, flaky, attempts=3, backoff_base=0.01) == "done"
    assert len(calls) == 3
    assert db.rollbacks == 2
    assert len(sleeps) == 2
    assert sleeps[1] > sleeps[0]


def test_exhausted_retries_raise_transient_error(sleeps):
    db = FakeSession()

    def always_locked():
        raise _locked()

    with pytest.raises(TransientStoreError):
        retry.run_with_retry(db, always_locked, attempts=3, backoff_base=0.01)
    assert db.rollbacks == 3
    assert len(sleeps) == 2


def test_integrity_error_becomes_conflict_without_retry(sleeps):
    db = FakeSession()
    calls = []

    def duplicate():
        calls.append(1)
        raise IntegrityError("INSERT INTO cards", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(ConflictError):
        retry.run_with_retry(db, duplicate, attempts=3, backoff_base=0.01)
    assert len(calls) == 1
    assert sleeps == []


def test_domain_errors_pass_through(sleeps):
    db = FakeSession()

    @retry.with_store_retry
    def missing(session, card_id):
        raise NotFoundError(f"Card {card_id} not found")

    with pytest.raises(NotFoundError, match="abc"):
        missing(db, "abc")
    assert db.rollbacks == 1
    assert sleeps == []
