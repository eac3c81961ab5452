"""Tests for summary email rendering."""
import unittest
from datetime import date
from decimal import Decimal

from moneylog.reports.renderer import render_summary_html, build_subject, format_amount, sorted_categories
from moneylog.stats.models import Aggregate, TypeTotals, NeedWantTotals


class TestRenderer(unittest.TestCase):
    """Test HTML summary rendering."""

    def setUp(self):
        """Set up test fixtures."""
        self.aggregate = Aggregate(
            total_amount=Decimal("1250.5"),
            total_by_type=TypeTotals(fixed=Decimal("1000"), variable=Decimal("250.5")),
            total_by_need_or_want=NeedWantTotals(need=Decimal("1000"), want=Decimal("250.5")),
            total_by_bucket={"2024-01-08": Decimal("250.5"), "2024-01-01": Decimal("1000")},
            total_by_category={"Food": Decimal("250.5"), "<Rent>": Decimal("1000")},
            transaction_count=2
        )

    def test_render_sections(self):
        html = render_summary_html(self.aggregate, date(2024, 1, 1), date(2024, 1, 14))

        self.assertIn("<h1>Expense Summary</h1>", html)
        self.assertIn("2024-01-01 to 2024-01-14", html)
        self.assertIn("1,250.50", html)
        for title in ("Total Amount", "Amount by Type", "Amount by Need or Want",
                      "Amount by Frequency", "Amount by Category"):
            self.assertIn(title, html)

    def test_category_names_are_escaped(self):
        html = render_summary_html(self.aggregate, date(2024, 1, 1), date(2024, 1, 14))

        self.assertIn("&lt;Rent&gt;", html)
        self.assertNotIn("<Rent>", html)

    def test_buckets_in_chronological_order(self):
        html = render_summary_html(self.aggregate, date(2024, 1, 1), date(2024, 1, 14))

        self.assertLess(html.index("2024-01-01</td>"), html.index("2024-01-08</td>"))

    def test_need_or_want_section_optional(self):
        self.aggregate.total_by_need_or_want = None

        html = render_summary_html(self.aggregate, date(2024, 1, 1), date(2024, 1, 14))

        self.assertNotIn("Amount by Need or Want", html)

    def test_sorted_categories(self):
        totals = {"B": Decimal("5"), "A": Decimal("5"), "C": Decimal("9")}
        self.assertEqual([name for name, _ in sorted_categories(totals)], ["C", "A", "B"])

    def test_subject_and_amounts(self):
        self.assertEqual(
            build_subject("MoneyLog expense summary", date(2024, 1, 1), date(2024, 1, 7)),
            "MoneyLog expense summary: 2024-01-01 to 2024-01-07"
        )
        self.assertEqual(format_amount(Decimal("0")), "0.00")


if __name__ == "__main__":
    unittest.main()
