"""Transaction aggregation module."""
from decimal import Decimal
from typing import Iterable, List, Optional

from .frequency import frequency_key, normalize_frequency, SUNDAY, DEFAULT_FREQUENCY
from .models import Transaction, Expense, Aggregate, TypeTotals, NeedWantTotals
from moneylog.utils.dates import DateLike, parse_date
from moneylog.utils.logger import get_logger

logger = get_logger()


def filter_by_date_range(
    transactions: Iterable[Transaction],
    start: DateLike = None,
    end: DateLike = None
) -> List[Transaction]:
    """
    Keep transactions dated within ``[start, end]``, both ends inclusive.

    A missing bound is open. A bound that cannot be parsed matches nothing.
    """
    transactions = list(transactions)
    if start is None and end is None:
        return transactions

    start_date = parse_date(start)
    end_date = parse_date(end)

    if (start is not None and start_date is None) or (end is not None and end_date is None):
        logger.warning(f"Unparseable date range {start!r} - {end!r}, nothing matches")
        return []

    retained = []
    for txn in transactions:
        txn_date = parse_date(txn.date)
        if txn_date is None:
            continue
        if start_date is not None and txn_date < start_date:
            continue
        if end_date is not None and txn_date > end_date:
            continue
        retained.append(txn)
    return retained


class Aggregator:
    """Aggregates transactions by type, need/want, time bucket and category."""

    def __init__(self, week_start: int = SUNDAY):
        self.week_start = week_start

    def aggregate(
        self,
        transactions: Iterable[Transaction],
        start: DateLike = None,
        end: DateLike = None,
        frequency: Optional[str] = DEFAULT_FREQUENCY,
        include_need_or_want: bool = True
    ) -> Aggregate:
        """
        Aggregate transactions in a single pass.

        Args:
            transactions: Transactions already joined with their category name
            start: Inclusive lower date bound (optional)
            end: Inclusive upper date bound (optional)
            frequency: Bucket granularity; unknown values fall back to monthly
            include_need_or_want: Build the need/want axis (expense aggregates)

        Returns:
            Aggregate object; all-zero when nothing is retained
        """
        frequency = normalize_frequency(frequency)
        retained = filter_by_date_range(transactions, start, end)

        result = Aggregate(
            total_by_type=TypeTotals(),
            total_by_need_or_want=NeedWantTotals() if include_need_or_want else None
        )
        orphaned = 0

        for txn in retained:
            txn_date = parse_date(txn.date)
            if txn_date is None:
                logger.warning(f"Skipping transaction {txn.id} with unparseable date {txn.date!r}")
                continue

            amount = Decimal(str(txn.amount))

            result.total_amount += amount
            result.total_by_type.add(txn.kind, amount)

            if (result.total_by_need_or_want is not None and isinstance(txn, Expense)
                    and txn.need_or_want is not None):
                result.total_by_need_or_want.add(txn.need_or_want, amount)

            bucket = frequency_key(txn_date, frequency, self.week_start)
            result.total_by_bucket[bucket] = result.total_by_bucket.get(bucket, Decimal("0")) + amount

            if txn.category_name is None:
                orphaned += 1
            else:
                result.total_by_category[txn.category_name] = (
                    result.total_by_category.get(txn.category_name, Decimal("0")) + amount
                )

            result.transaction_count += 1

        if orphaned:
            logger.debug(f"{orphaned} transactions reference a deleted category")

        logger.debug(
            f"Aggregated {result.transaction_count} transactions into "
            f"{len(result.total_by_bucket)} {frequency} buckets and "
            f"{len(result.total_by_category)} categories"
        )

        return result

    def aggregate_expenses(
        self,
        expenses: Iterable[Expense],
        start: DateLike = None,
        end: DateLike = None,
        frequency: Optional[str] = DEFAULT_FREQUENCY
    ) -> Aggregate:
        return self.aggregate(expenses, start, end, frequency, include_need_or_want=True)

    def aggregate_incomes(
        self,
        incomes: Iterable[Transaction],
        start: DateLike = None,
        end: DateLike = None,
        frequency: Optional[str] = DEFAULT_FREQUENCY
    ) -> Aggregate:
        """Income aggregates carry no need/want axis."""
        return self.aggregate(incomes, start, end, frequency, include_need_or_want=False)
