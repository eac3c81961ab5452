"""Statistics aggregation module."""
from .models import Transaction, Income, Expense, Aggregate, TypeTotals, NeedWantTotals
from .frequency import frequency_key, normalize_frequency, validate_frequency, FREQUENCIES
from .aggregator import Aggregator, filter_by_date_range

__all__ = [
    "Transaction",
    "Income",
    "Expense",
    "Aggregate",
    "TypeTotals",
    "NeedWantTotals",
    "frequency_key",
    "normalize_frequency",
    "validate_frequency",
    "FREQUENCIES",
    "Aggregator",
    "filter_by_date_range"
]
