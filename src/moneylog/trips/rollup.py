"""Per-trip statistics: duration, totals and average daily spend."""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple, Any

from moneylog.schemas import TripFilterParams, validate_payload
from moneylog.stats.aggregator import Aggregator, filter_by_date_range
from moneylog.stats.frequency import DAILY, SUNDAY, frequency_key, normalize_frequency
from moneylog.stats.models import Expense, TypeTotals, NeedWantTotals
from moneylog.storage.models import Trip
from moneylog.utils.dates import DateLike
from moneylog.utils.logger import get_logger

logger = get_logger()

CENT = Decimal("0.01")


@dataclass
class TripRollup:
    """Trip-scoped aggregate."""
    trip_id: int
    trip_name: str
    trip_duration: int
    total_amount: Decimal
    total_by_type: TypeTotals
    total_by_need_or_want: NeedWantTotals
    total_by_category: Dict[str, Decimal]
    average_daily_expense: Decimal
    by_bucket: Optional[Dict[str, List[Expense]]] = None
    expenses: Optional[List[Expense]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "tripId": self.trip_id,
            "tripName": self.trip_name,
            "tripDuration": self.trip_duration,
            "totalAmount": float(self.total_amount),
            "totalAmountByType": self.total_by_type.to_dict(),
            "totalAmountByNeedOrWant": self.total_by_need_or_want.to_dict(),
            "totalAmountByCategory": {k: float(v) for k, v in self.total_by_category.items()},
            "averageDailyExpense": f"{self.average_daily_expense:.2f}",
        }
        if self.by_bucket is not None:
            data["expensesByFrequency"] = {
                key: [_expense_dict(e) for e in group] for key, group in self.by_bucket.items()
            }
        if self.expenses is not None:
            data["expenses"] = [_expense_dict(e) for e in self.expenses]
        return data


def _expense_dict(expense: Expense) -> Dict[str, Any]:
    return {
        "id": expense.id,
        "amount": float(expense.amount),
        "description": expense.description,
        "date": expense.date.isoformat(),
        "type": expense.kind,
        "needOrWant": expense.need_or_want,
        "category": expense.category_name,
    }


def trip_duration(start_date: date, end_date: Optional[date], today: Optional[date] = None) -> int:
    """Whole days from start to end (or today), both inclusive, never below 1."""
    effective_end = end_date or today or date.today()
    return max((effective_end - start_date).days + 1, 1)


class TripRollupBuilder:
    """Builds trip rollups on top of the aggregation engine."""

    def __init__(self, week_start: int = SUNDAY):
        self.week_start = week_start
        self.aggregator = Aggregator(week_start)

    def rollup_trip(
        self,
        trip: Trip,
        expenses: Iterable[Expense],
        start: DateLike = None,
        end: DateLike = None,
        frequency: Optional[str] = None,
        today: Optional[date] = None
    ) -> Optional[TripRollup]:
        """
        Roll up one trip.

        Returns None when a date range is given and none of the trip's
        expenses fall inside it.
        """
        expenses = list(expenses)
        filtered = expenses
        if start is not None or end is not None:
            filtered = filter_by_date_range(expenses, start, end)
            if not filtered:
                logger.debug(f"Trip '{trip.name}' has no expenses in range, omitted")
                return None

        duration = trip_duration(trip.start_date, trip.end_date, today)
        aggregate = self.aggregator.aggregate_expenses(filtered, frequency=frequency)

        average = (aggregate.total_amount / duration).quantize(CENT, rounding=ROUND_HALF_UP)

        rollup = TripRollup(
            trip_id=trip.id,
            trip_name=trip.name,
            trip_duration=duration,
            total_amount=aggregate.total_amount,
            total_by_type=aggregate.total_by_type,
            total_by_need_or_want=aggregate.total_by_need_or_want,
            total_by_category=aggregate.total_by_category,
            average_daily_expense=average
        )

        if frequency is not None:
            if normalize_frequency(frequency) == DAILY:
                rollup.expenses = filtered
            else:
                rollup.by_bucket = self._group_by_bucket(filtered, frequency)

        return rollup

    def rollup_trips(
        self,
        trips: Iterable[Tuple[Trip, List[Expense]]],
        today: Optional[date] = None
    ) -> List[TripRollup]:
        """One rollup per trip, without any date filter."""
        return [self.rollup_trip(trip, expenses, today=today) for trip, expenses in trips]

    def rollup_trips_filtered(
        self,
        trips: Iterable[Tuple[Trip, List[Expense]]],
        start: DateLike,
        end: DateLike,
        frequency: Optional[str],
        today: Optional[date] = None
    ) -> List[TripRollup]:
        """
        Roll up trips restricted to a date range.

        Unlike the aggregation engine, an unknown frequency is rejected here.

        Raises:
            ValidationError: On missing or invalid range or frequency
        """
        params = validate_payload(
            TripFilterParams,
            {"start_date": start, "end_date": end, "frequency": frequency}
        )

        rollups = []
        for trip, expenses in trips:
            rollup = self.rollup_trip(
                trip, expenses, params.start_date, params.end_date, params.frequency, today
            )
            if rollup is not None:
                rollups.append(rollup)

        logger.info(
            f"Rolled up {len(rollups)} trips between {params.start_date} and {params.end_date}"
        )
        return rollups

    def _group_by_bucket(self, expenses: List[Expense], frequency: str) -> Dict[str, List[Expense]]:
        groups: Dict[str, List[Expense]] = {}
        for expense in expenses:
            key = frequency_key(expense.date, frequency, self.week_start)
            groups.setdefault(key, []).append(expense)
        return groups
