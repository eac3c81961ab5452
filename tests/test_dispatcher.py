"""Tests for report dispatch."""
import unittest
from datetime import date
from decimal import Decimal

from moneylog.reports.dispatcher import ReportDispatcher
from moneylog.stats.models import Expense
from moneylog.storage.models import User
from moneylog.utils.exceptions import DeliveryError, StorageError, ValidationError


class FakeRepository:
    def __init__(self, users, expenses):
        self.users = users
        self.expenses = expenses
        self.deliveries = {}

    def list_users(self):
        return list(self.users)

    def fetch_expenses(self, owner_id, start=None, end=None):
        return list(self.expenses.get(owner_id, []))

    def is_dispatched(self, user_id, period_key):
        return (user_id, period_key) in self.deliveries

    def mark_delivered(self, record):
        self.deliveries[(record.user_id, record.period_key)] = record


class FailingLogRepository(FakeRepository):
    """Delivery log write fails for one user."""

    def __init__(self, users, expenses, failing_user_id):
        super().__init__(users, expenses)
        self.failing_user_id = failing_user_id

    def mark_delivered(self, record):
        if record.user_id == self.failing_user_id:
            raise StorageError("Database error: disk full")
        super().mark_delivered(record)


class FakeMailer:
    def __init__(self, sent, failing=()):
        self.sent = sent
        self.failing = failing

    def send(self, recipient, subject, body):
        if recipient in self.failing:
            raise DeliveryError(f"Gmail rejected message to {recipient}")
        self.sent.append((recipient, subject, body))
        return "msg-id"


def make_expense(owner_id, amount, day):
    return Expense(
        id=None, owner_id=owner_id, category_id=1, amount=Decimal(amount), date=day,
        kind="variable", category_name="Food", need_or_want="want"
    )


class TestReportDispatcher(unittest.TestCase):
    """Test ReportDispatcher functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.users = [
            User(id=1, email="one@example.com"),
            User(id=2, email="two@example.com"),
            User(id=3, email="three@example.com"),
        ]
        self.repository = FakeRepository(self.users, {
            1: [make_expense(1, "10", date(2024, 1, 2))],
            2: [make_expense(2, "20", date(2024, 1, 3))],
            3: [make_expense(3, "30", date(2024, 1, 4))],
        })
        self.sent = []

    def _dispatcher(self, failing=()):
        return ReportDispatcher(
            self.repository,
            lambda: FakeMailer(self.sent, failing),
            max_workers=3
        )

    def test_dispatch_for_user_sends_summary(self):
        result = self._dispatcher().dispatch_for_user(self.users[0], "2024-01-01", "2024-01-07", "daily")

        self.assertTrue(result.sent)
        self.assertEqual(result.total_amount, 10.0)
        self.assertEqual(len(self.sent), 1)
        recipient, subject, body = self.sent[0]
        self.assertEqual(recipient, "one@example.com")
        self.assertIn("2024-01-01 to 2024-01-07", subject)
        self.assertIn("Expense Summary", body)

    def test_zero_total_is_not_sent(self):
        result = self._dispatcher().dispatch_for_user(self.users[0], "2024-02-01", "2024-02-29", "daily")

        self.assertFalse(result.sent)
        self.assertEqual(result.reason, "no expenses")
        self.assertIsNone(result.error)
        self.assertEqual(self.sent, [])

    def test_failing_user_does_not_stop_others(self):
        results = self._dispatcher(failing=("two@example.com",)).dispatch_all(
            "2024-01-01", "2024-01-31", "weekly"
        )

        by_user = {r.user_id: r for r in results}
        self.assertEqual(len(results), 3)
        self.assertTrue(by_user[1].sent)
        self.assertTrue(by_user[3].sent)
        self.assertFalse(by_user[2].sent)
        self.assertIn("two@example.com", by_user[2].error)
        self.assertEqual(
            sorted(r[0] for r in self.sent), ["one@example.com", "three@example.com"]
        )

    def test_critical_error_is_isolated(self):
        dispatcher = self._dispatcher()
        original = dispatcher.dispatch_for_user

        def flaky(user, start, end, frequency):
            if user.id == 2:
                raise RuntimeError("boom")
            return original(user, start, end, frequency)

        dispatcher.dispatch_for_user = flaky
        results = dispatcher.dispatch_all("2024-01-01", "2024-01-31")

        by_user = {r.user_id: r for r in results}
        self.assertEqual(by_user[2].reason, "error")
        self.assertEqual(by_user[2].error, "boom")
        self.assertTrue(by_user[1].sent)
        self.assertTrue(by_user[3].sent)

    def test_invalid_range_raises(self):
        with self.assertRaises(ValidationError):
            self._dispatcher().dispatch_all("yesterday", "2024-01-31")

    def test_dispatch_period_runs_once_per_period(self):
        self.repository.expenses[3] = []
        dispatcher = self._dispatcher(failing=("two@example.com",))

        first = dispatcher.dispatch_period(date(2024, 1, 1), date(2024, 1, 31), "monthly")
        second = dispatcher.dispatch_period(date(2024, 1, 1), date(2024, 1, 31), "monthly")

        self.assertEqual(len(first), 3)
        self.assertEqual(second, [])
        statuses = {key[0]: record.status for key, record in self.repository.deliveries.items()}
        self.assertEqual(statuses, {1: "SENT", 2: "FAILED", 3: "EMPTY"})
        self.assertEqual(
            set(key[1] for key in self.repository.deliveries), {"monthly:2024-01"}
        )
        self.assertEqual(len(self.sent), 1)

    def test_delivery_log_failure_does_not_affect_other_users(self):
        self.repository = FailingLogRepository(self.users, self.repository.expenses, failing_user_id=1)
        dispatcher = self._dispatcher()

        first = dispatcher.dispatch_period(date(2024, 1, 1), date(2024, 1, 31), "monthly")

        self.assertEqual(len(first), 3)
        self.assertTrue(all(r.sent for r in first))
        self.assertEqual(sorted(key[0] for key in self.repository.deliveries), [2, 3])

        second = dispatcher.dispatch_period(date(2024, 1, 1), date(2024, 1, 31), "monthly")

        self.assertEqual([r.user_id for r in second], [1])
        self.assertEqual(
            sorted(r[0] for r in self.sent),
            ["one@example.com", "one@example.com", "three@example.com", "two@example.com"]
        )


if __name__ == "__main__":
    unittest.main()
