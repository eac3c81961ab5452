"""Tests for payload validation."""
import unittest
from datetime import date
from decimal import Decimal

from moneylog.schemas import ExpenseIn, IncomeIn, TripIn, CategoryIn, ReportIn, TripFilterParams, validate_payload
from moneylog.utils.exceptions import ValidationError


class TestSchemas(unittest.TestCase):
    """Test schema validation at the boundary."""

    def test_valid_expense(self):
        data = validate_payload(ExpenseIn, {
            "category_id": 1, "amount": "12.50", "date": "2024-01-05",
            "kind": "fixed", "need_or_want": "need"
        })

        self.assertEqual(data.amount, Decimal("12.50"))
        self.assertEqual(data.date, date(2024, 1, 5))
        self.assertEqual(data.description, "")

    def test_non_positive_amount_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_payload(ExpenseIn, {
                "category_id": 1, "amount": 0, "kind": "fixed", "need_or_want": "need"
            })
        self.assertIn("Invalid ExpenseIn", str(ctx.exception))
        self.assertIn("amount", str(ctx.exception))

    def test_unknown_kind_rejected(self):
        with self.assertRaises(ValidationError):
            validate_payload(IncomeIn, {"category_id": 1, "amount": 10, "source": "Job", "kind": "monthly"})

    def test_income_requires_source(self):
        with self.assertRaises(ValidationError):
            validate_payload(IncomeIn, {"category_id": 1, "amount": 10, "source": "", "kind": "fixed"})

    def test_category_direction(self):
        self.assertEqual(validate_payload(CategoryIn, {"name": "Rent", "direction": "expense"}).threshold, None)
        with self.assertRaises(ValidationError):
            validate_payload(CategoryIn, {"name": "Rent", "direction": "transfer"})

    def test_trip_expense_ids_deduplicated(self):
        data = validate_payload(TripIn, {"name": "Bali", "start_date": "2024-06-10", "expense_ids": [3, 1, 3, 2, 1]})

        self.assertEqual(data.expense_ids, [3, 1, 2])
        self.assertIsNone(data.end_date)

    def test_report_type(self):
        self.assertEqual(validate_payload(ReportIn, {"type": "trip"}).stats, {})
        with self.assertRaises(ValidationError):
            validate_payload(ReportIn, {"type": "daily"})

    def test_trip_filter_params(self):
        params = validate_payload(TripFilterParams, {
            "start_date": "2024-01-01", "end_date": "2024-01-31", "frequency": "Weekly"
        })
        self.assertEqual(params.frequency, "weekly")

        with self.assertRaises(ValidationError):
            validate_payload(TripFilterParams, {
                "start_date": "2024-02-01", "end_date": "2024-01-31", "frequency": "weekly"
            })


if __name__ == "__main__":
    unittest.main()
