"""
Race condition tests for event registration.

N registrants hit one event of capacity C < N at the same time. The event
lock must let exactly C of them in and turn the rest away with
CapacityExceeded, with nothing lost or duplicated.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

from event_registration.core.errors import AlreadyRegisteredError, CapacityExceededError, DomainError
from event_registration.database.db import Database
from event_registration.services.registrations import cancel, register


def _attempt(database: Database, barrier: Barrier, operation, event_id, user_id):
    """Run one operation in its own session. Returns the result or the domain error."""
    barrier.wait()
    with database.session() as db:
        try:
            return operation(db, event_id=event_id, user_id=user_id)
        except DomainError as exc:
            return exc


def _run_concurrently(database: Database, calls) -> list:
    barrier = Barrier(len(calls))
    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [
            executor.submit(_attempt, database, barrier, operation, event_id, user_id)
            for operation, event_id, user_id in calls
        ]
        return [f.result() for f in futures]


class TestRegistrationRaces:
    def test_concurrent_registrations_never_overbook(self, database, make_event, make_user, registration_count):
        """10 registrants, capacity 3: exactly 3 succeed."""
        capacity, attempts = 3, 10
        event_id = make_event(capacity=capacity, title="Race Test Event")
        users = [make_user() for _ in range(attempts)]

        results = _run_concurrently(database, [(register, event_id, user_id) for user_id in users])

        successful = [r for r in results if not isinstance(r, Exception)]
        refused = [r for r in results if isinstance(r, CapacityExceededError)]

        assert len(successful) == capacity
        assert len(refused) == attempts - capacity
        assert registration_count(event_id) == capacity
        # each success saw an exact count, so the remaining figures are a permutation
        assert sorted(r.remaining_capacity for r in successful) == [0, 1, 2]
        assert len({r.registration_id for r in successful}) == capacity

    def test_last_seat(self, database, make_event, make_user, registration_count):
        """Capacity 1, 10 concurrent requests: a single winner."""
        event_id = make_event(capacity=1)
        users = [make_user() for _ in range(10)]

        results = _run_concurrently(database, [(register, event_id, user_id) for user_id in users])

        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert sum(1 for r in results if isinstance(r, CapacityExceededError)) == 9
        assert registration_count(event_id) == 1

    def test_same_user_concurrent_duplicates(self, database, make_event, make_user, registration_count):
        """The same (user, event) sent 5 times at once is registered once."""
        event_id = make_event(capacity=10)
        user_id = make_user()

        results = _run_concurrently(database, [(register, event_id, user_id)] * 5)

        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert sum(1 for r in results if isinstance(r, AlreadyRegisteredError)) == 4
        assert registration_count(event_id) == 1

    def test_mixed_register_and_cancel(self, database, make_event, make_user, registration_count):
        """Cancellations racing registrations keep the count within capacity."""
        capacity = 4
        event_id = make_event(capacity=capacity)
        holders = [make_user() for _ in range(capacity)]
        with database.session() as db:
            for user_id in holders:
                register(db, event_id=event_id, user_id=user_id)

        newcomers = [make_user() for _ in range(6)]
        calls = [(cancel, event_id, user_id) for user_id in holders[:2]]
        calls += [(register, event_id, user_id) for user_id in newcomers]

        results = _run_concurrently(database, calls)

        cancelled = sum(1 for r in results[:2] if not isinstance(r, Exception))
        admitted = sum(1 for r in results[2:] if not isinstance(r, Exception))
        assert cancelled == 2
        assert admitted <= 2
        assert registration_count(event_id) == capacity - cancelled + admitted
        assert registration_count(event_id) <= capacity

    def test_independent_events_all_succeed(self, database, make_event, make_user, registration_count):
        events = [make_event(capacity=1) for _ in range(5)]
        users = [make_user() for _ in range(5)]

        results = _run_concurrently(
            database, [(register, event_id, user_id) for event_id, user_id in zip(events, users)]
        )

        assert all(not isinstance(r, Exception) for r in results)
        assert all(registration_count(event_id) == 1 for event_id in events)
