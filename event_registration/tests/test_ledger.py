"""
Test capacity ledger operations and storage error translation.
"""
import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from event_registration.core.errors import (
    AlreadyRegisteredError,
    EmailTakenError,
    NotFoundError,
    StorageUnavailableError,
    ValidationFailedError,
)
from event_registration.database import ledger
from event_registration.database.db import WRITE_INTENT, Database
from event_registration.services.availability import get_event_stats


class _FakeDriverError(Exception):
    def __init__(self, message: str, pgcode: str | None = None):
        super().__init__(message)
        self.pgcode = pgcode


def _integrity_error(message: str, pgcode: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, _FakeDriverError(message, pgcode))


class TestLedgerOperations:
    def test_get_event_missing_returns_none(self, database: Database):
        with database.session() as db:
            assert ledger.get_event(db, uuid.uuid4()) is None
            assert ledger.get_event(db, uuid.uuid4(), for_update=True) is None

    def test_get_event_for_update(self, database: Database, make_event):
        event_id = make_event(capacity=3, title="Locked")
        with database.session() as db, db.begin():
            event = ledger.get_event(db, event_id, for_update=True, lock_timeout=1.0)
            assert event is not None
            assert event.title == "Locked"

    def test_insert_count_exists_delete(self, database: Database, make_event, make_user):
        event_id = make_event(capacity=5)
        user_id = make_user()

        with database.session() as db, db.begin():
            assert ledger.count_registrations(db, event_id) == 0
            assert not ledger.registration_exists(db, user_id=user_id, event_id=event_id)

            registration = ledger.insert_registration(db, user_id=user_id, event_id=event_id)
            assert registration.registered_at is not None
            assert ledger.count_registrations(db, event_id) == 1
            assert ledger.registration_exists(db, user_id=user_id, event_id=event_id)

        with database.session() as db, db.begin():
            assert ledger.delete_registration(db, user_id=user_id, event_id=event_id) is True
            assert ledger.delete_registration(db, user_id=user_id, event_id=event_id) is False
            assert ledger.count_registrations(db, event_id) == 0

    def test_rolled_back_insert_is_not_durable(self, database: Database, make_event, make_user):
        event_id = make_event()
        user_id = make_user()

        with database.session() as db:
            with pytest.raises(RuntimeError):
                with db.begin():
                    ledger.insert_registration(db, user_id=user_id, event_id=event_id)
                    raise RuntimeError("abort")

        with database.session() as db:
            assert ledger.count_registrations(db, event_id) == 0

    def test_duplicate_insert_translated(self, database: Database, make_event, make_user):
        event_id = make_event()
        user_id = make_user()
        with database.session() as db, db.begin():
            ledger.insert_registration(db, user_id=user_id, event_id=event_id)

        with database.session() as db:
            with pytest.raises(AlreadyRegisteredError):
                with ledger.storage_errors("test"), db.begin():
                    ledger.insert_registration(db, user_id=user_id, event_id=event_id)

    def test_unknown_user_insert_translated(self, database: Database, make_event):
        event_id = make_event()
        with database.session() as db:
            with pytest.raises(NotFoundError):
                with ledger.storage_errors("test"), db.begin():
                    ledger.insert_registration(db, user_id=uuid.uuid4(), event_id=event_id)

    def test_write_transaction_is_tagged(self, database: Database):
        with database.session() as db, ledger.write_transaction(db):
            assert db.connection().get_execution_options().get(WRITE_INTENT) is True

        with database.session() as db:
            assert not db.connection().get_execution_options().get(WRITE_INTENT)

    def test_reads_do_not_wait_for_a_writer(self, database: Database, make_event):
        """An open write transaction blocks neither the reader nor the health ping."""
        event_id = make_event(capacity=4)

        with database.session() as writer, ledger.write_transaction(writer):
            ledger.get_event(writer, event_id, for_update=True)

            with database.session() as reader:
                stats = get_event_stats(reader, event_id)
            assert database.ping() is True

        assert stats.remaining_capacity == 4


class TestIntegrityTranslation:
    @pytest.mark.parametrize(
        "message, pgcode, expected",
        [
            ("UNIQUE constraint failed: registrations.user_id, registrations.event_id", None, AlreadyRegisteredError),
            ('duplicate key value violates unique constraint "uq_registrations_user_event"', "23505", AlreadyRegisteredError),
            ("UNIQUE constraint failed: users.email", None, EmailTakenError),
            ("FOREIGN KEY constraint failed", None, NotFoundError),
            ('insert or update violates foreign key constraint "registrations_user_id_fkey"', "23503", NotFoundError),
            ("CHECK constraint failed: ck_events_capacity_range", None, ValidationFailedError),
        ],
    )
    def test_translate(self, message, pgcode, expected):
        error = ledger.translate_integrity_error(_integrity_error(message, pgcode))
        assert isinstance(error, expected)

    def test_capacity_check_message(self):
        error = ledger.translate_integrity_error(
            _integrity_error('violates check constraint "ck_events_capacity_range"', "23514")
        )
        assert error.message == "Capacity must be between 1 and 1000"

    def test_operational_error_becomes_storage_unavailable(self):
        with pytest.raises(StorageUnavailableError) as excinfo:
            with ledger.storage_errors("test"):
                raise OperationalError("SELECT 1", {}, _FakeDriverError("connection refused"))
        assert "connection refused" not in excinfo.value.message

    def test_lock_timeout_becomes_storage_unavailable(self):
        with pytest.raises(StorageUnavailableError, match="acquire lock"):
            with ledger.storage_errors("test"):
                raise OperationalError(
                    "SELECT ... FOR UPDATE", {}, _FakeDriverError("canceling statement", "55P03")
                )
