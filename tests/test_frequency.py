"""Tests for bucket keys and reporting periods."""
import unittest
from datetime import date, datetime

from moneylog.stats.frequency import (
    frequency_key, normalize_frequency, validate_frequency, previous_period,
    week_start_date, MONDAY, SUNDAY
)
from moneylog.utils.exceptions import ValidationError


class TestFrequencyKey(unittest.TestCase):
    """Test frequency_key bucket mapping."""

    def test_daily_key(self):
        self.assertEqual(frequency_key(date(2024, 1, 5), "daily"), "2024-01-05")

    def test_weekly_key_sunday_start(self):
        # 2024-01-05 is a Friday
        self.assertEqual(frequency_key(date(2024, 1, 5), "weekly", SUNDAY), "2023-12-31")

    def test_weekly_key_monday_start(self):
        self.assertEqual(frequency_key(date(2024, 1, 5), "weekly", MONDAY), "2024-01-01")

    def test_weekly_key_same_week_shares_bucket(self):
        keys = {frequency_key(date(2024, 1, d), "weekly") for d in range(7, 14)}
        self.assertEqual(keys, {"2024-01-07"})

    def test_weekly_key_does_not_collide_across_months(self):
        """First weeks of different months get different keys."""
        self.assertNotEqual(
            frequency_key(date(2024, 1, 2), "weekly"),
            frequency_key(date(2024, 2, 2), "weekly")
        )

    def test_monthly_key_zero_padded(self):
        self.assertEqual(frequency_key(date(2024, 1, 20), "monthly"), "2024-01")

    def test_quarterly_key(self):
        self.assertEqual(frequency_key(date(2024, 1, 1), "quarterly"), "2024-Q1")
        self.assertEqual(frequency_key(date(2024, 6, 30), "quarterly"), "2024-Q2")
        self.assertEqual(frequency_key(date(2024, 11, 30), "quarterly"), "2024-Q4")

    def test_yearly_key(self):
        self.assertEqual(frequency_key(date(2024, 12, 31), "yearly"), "2024")
        self.assertNotEqual(
            frequency_key(date(2024, 12, 31), "yearly"),
            frequency_key(date(2025, 1, 1), "yearly")
        )

    def test_unknown_frequency_falls_back_to_monthly(self):
        self.assertEqual(frequency_key(date(2024, 3, 9), "hourly"), "2024-03")
        self.assertEqual(frequency_key(date(2024, 3, 9), None), "2024-03")

    def test_accepts_datetime(self):
        self.assertEqual(frequency_key(datetime(2024, 3, 9, 23, 59), "daily"), "2024-03-09")

    def test_case_insensitive(self):
        self.assertEqual(frequency_key(date(2024, 3, 9), " Yearly "), "2024")

    def test_deterministic_for_every_frequency(self):
        days = [date(2023, 12, 31), date(2024, 2, 29), date(2024, 7, 14), datetime(2024, 7, 14, 8, 30)]

        for frequency in ("daily", "weekly", "monthly", "quarterly", "yearly"):
            for day in days:
                self.assertEqual(
                    frequency_key(day, frequency, MONDAY), frequency_key(day, frequency, MONDAY)
                )
            self.assertEqual(frequency_key(days[2], frequency), frequency_key(days[3], frequency))

    def test_yearly_key_shared_within_year(self):
        keys = {frequency_key(date(2024, month, 15), "yearly") for month in range(1, 13)}
        self.assertEqual(keys, {"2024"})


class TestFrequencyHelpers(unittest.TestCase):
    """Test normalization, validation and periods."""

    def test_normalize_frequency(self):
        self.assertEqual(normalize_frequency("WEEKLY"), "weekly")
        self.assertEqual(normalize_frequency("fortnightly"), "monthly")
        self.assertEqual(normalize_frequency(42), "monthly")

    def test_validate_frequency_rejects_unknown(self):
        with self.assertRaises(ValidationError):
            validate_frequency("hourly")
        self.assertEqual(validate_frequency("Daily"), "daily")

    def test_week_start_date(self):
        self.assertEqual(week_start_date(date(2024, 1, 7), SUNDAY), date(2024, 1, 7))
        self.assertEqual(week_start_date(date(2024, 1, 7), MONDAY), date(2024, 1, 1))

    def test_previous_period_daily(self):
        self.assertEqual(
            previous_period("daily", date(2024, 3, 1)),
            (date(2024, 2, 29), date(2024, 2, 29))
        )

    def test_previous_period_weekly(self):
        # 2024-01-10 is a Wednesday
        self.assertEqual(
            previous_period("weekly", date(2024, 1, 10), SUNDAY),
            (date(2023, 12, 31), date(2024, 1, 6))
        )

    def test_previous_period_monthly(self):
        self.assertEqual(
            previous_period("monthly", date(2024, 3, 15)),
            (date(2024, 2, 1), date(2024, 2, 29))
        )

    def test_previous_period_quarterly(self):
        self.assertEqual(
            previous_period("quarterly", date(2024, 5, 10)),
            (date(2024, 1, 1), date(2024, 3, 31))
        )
        self.assertEqual(
            previous_period("quarterly", date(2024, 2, 1)),
            (date(2023, 10, 1), date(2023, 12, 31))
        )

    def test_previous_period_yearly(self):
        self.assertEqual(
            previous_period("yearly", date(2024, 6, 1)),
            (date(2023, 1, 1), date(2023, 12, 31))
        )


if __name__ == "__main__":
    unittest.main()
