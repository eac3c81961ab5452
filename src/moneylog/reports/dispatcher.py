"""Report dispatch: aggregate each user's expenses and email the summary.

Each user is an independent unit of work. The batch variant runs users on a
thread pool, waits for every future and collects one result per user, so a
failing delivery never stops or hides the others. Deliveries are not
retried.
"""
import concurrent.futures
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from .renderer import render_summary_html, build_subject
from moneylog.stats.aggregator import Aggregator
from moneylog.stats.frequency import SUNDAY, DEFAULT_FREQUENCY, frequency_key
from moneylog.storage.models import User, DeliveryRecord
from moneylog.storage.repository import Repository
from moneylog.utils.dates import DateLike, parse_date
from moneylog.utils.exceptions import MoneyLogError, ValidationError
from moneylog.utils.logger import get_logger, set_user_context

logger = get_logger()

DEFAULT_SUBJECT_PREFIX = "MoneyLog expense summary"


@dataclass
class DispatchResult:
    user_id: int
    recipient: str
    sent: bool = False
    total_amount: float = 0.0
    reason: str = ""
    error: Optional[str] = None


class ReportDispatcher:
    """Computes per-user expense summaries and hands them to a mailer."""

    def __init__(
        self,
        repository: Repository,
        mailer_factory: Callable[[], object],
        max_workers: int = 3,
        week_start: int = SUNDAY,
        subject_prefix: str = DEFAULT_SUBJECT_PREFIX
    ):
        self.repository = repository
        self.mailer_factory = mailer_factory
        self.max_workers = max_workers
        self.subject_prefix = subject_prefix
        self.week_start = week_start
        self.aggregator = Aggregator(week_start)

    def dispatch_for_user(
        self,
        user: User,
        start: DateLike,
        end: DateLike,
        frequency: Optional[str] = DEFAULT_FREQUENCY
    ) -> DispatchResult:
        """
        Send one user's summary for ``[start, end]``.

        Nothing is sent when the user has no expenses in the range. Delivery
        failures are logged and reported in the result.
        """
        start_date, end_date = _parse_range(start, end)
        result = DispatchResult(user_id=user.id, recipient=user.email)

        set_user_context(user.id)
        try:
            expenses = self.repository.fetch_expenses(user.id, start_date, end_date)
            aggregate = self.aggregator.aggregate_expenses(expenses, start_date, end_date, frequency)
            result.total_amount = float(aggregate.total_amount)

            if aggregate.total_amount == 0:
                result.reason = "no expenses"
                logger.info(f"No expenses between {start_date} and {end_date}, nothing sent")
                return result

            subject = build_subject(self.subject_prefix, start_date, end_date)
            body = render_summary_html(aggregate, start_date, end_date)

            try:
                mailer = self.mailer_factory()
                mailer.send(user.email, subject, body)
            except Exception as e:
                result.reason = "delivery failed"
                result.error = str(e)
                logger.error(f"Failed to deliver report to {user.email}: {e}")
                return result

            result.sent = True
            result.reason = "sent"
            logger.info(f"Report for {start_date} - {end_date} sent to {user.email}")
            return result
        finally:
            set_user_context(None)

    def dispatch_all(
        self,
        start: DateLike,
        end: DateLike,
        frequency: Optional[str] = DEFAULT_FREQUENCY,
        users: Optional[List[User]] = None
    ) -> List[DispatchResult]:
        """Dispatch to every user (or the given users) in parallel."""
        start_date, end_date = _parse_range(start, end)
        users = self.repository.list_users() if users is None else users
        return self._run_batch(
            users,
            lambda user: self.dispatch_for_user(user, start_date, end_date, frequency),
            f"{start_date} - {end_date}"
        )

    def dispatch_period(
        self,
        start: date,
        end: date,
        frequency: str,
        users: Optional[List[User]] = None
    ) -> List[DispatchResult]:
        """Dispatch a scheduled period, skipping users already handled for it.

        Each user's outcome is logged in the same unit of work as the send.
        """
        start_date, end_date = _parse_range(start, end)
        period_key = f"{frequency}:{frequency_key(start_date, frequency, self.week_start)}"
        users = self.repository.list_users() if users is None else users
        pending = [u for u in users if not self.repository.is_dispatched(u.id, period_key)]

        if len(pending) < len(users):
            logger.info(f"{len(users) - len(pending)} users already handled for {period_key}")

        return self._run_batch(
            pending,
            lambda user: self._dispatch_and_record(user, start_date, end_date, frequency, period_key),
            period_key
        )

    def _dispatch_and_record(
        self,
        user: User,
        start: date,
        end: date,
        frequency: str,
        period_key: str
    ) -> DispatchResult:
        result = self.dispatch_for_user(user, start, end, frequency)
        try:
            self.repository.mark_delivered(DeliveryRecord(
                user_id=result.user_id,
                period_key=period_key,
                recipient=result.recipient,
                status=_delivery_status(result)
            ))
        except MoneyLogError as e:
            logger.error(f"Could not record {period_key} outcome for user {user.id}: {e}")
        return result

    def _run_batch(
        self,
        users: List[User],
        worker: Callable[[User], DispatchResult],
        label: str
    ) -> List[DispatchResult]:
        results = []

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_user = {executor.submit(worker, user): user for user in users}

            for future in concurrent.futures.as_completed(future_to_user):
                user = future_to_user[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Critical error dispatching report for user {user.id}: {e}")
                    results.append(DispatchResult(
                        user_id=user.id, recipient=user.email, reason="error", error=str(e)
                    ))

        sent = sum(1 for r in results if r.sent)
        failed = sum(1 for r in results if r.error)
        logger.info(f"Dispatch {label} complete: {len(results)} users, {sent} sent, {failed} failed")
        return results


def _parse_range(start: DateLike, end: DateLike):
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None:
        raise ValidationError(f"Invalid report range: {start!r} - {end!r}")
    return start_date, end_date


def _delivery_status(result: DispatchResult) -> str:
    if result.sent:
        return "SENT"
    if result.error:
        return "FAILED"
    return "EMPTY"
