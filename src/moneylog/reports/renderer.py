"""HTML rendering of expense summaries for email."""
from datetime import date
from decimal import Decimal
from html import escape
from typing import Dict, Iterable, Tuple

from moneylog.stats.models import Aggregate

STYLE = """
      body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 20px; }
      .container { max-width: 600px; margin: auto; background: #f9f9f9; padding: 20px;
                   border-radius: 8px; box-shadow: 0 0 10px rgba(0, 0, 0, 0.1); }
      h1 { text-align: center; color: #4CAF50; }
      .section { margin-bottom: 20px; }
      .section h2 { font-size: 18px; color: #555; border-bottom: 2px solid #4CAF50; padding-bottom: 5px; }
      table { width: 100%; border-collapse: collapse; margin-top: 10px; }
      table th, table td { text-align: left; padding: 8px; border: 1px solid #ddd; }
      table th { background: #4CAF50; color: white; }
"""


def format_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def build_subject(prefix: str, start: date, end: date) -> str:
    return f"{prefix}: {start.isoformat()} to {end.isoformat()}"


def _table(label: str, rows: Iterable[Tuple[str, Decimal]]) -> str:
    body = "".join(
        f"<tr><td>{escape(str(name))}</td><td>{format_amount(amount)}</td></tr>"
        for name, amount in rows
    )
    return f"<table><tr><th>{escape(label)}</th><th>Amount</th></tr>{body}</table>"


def _section(title: str, content: str) -> str:
    return f'<div class="section"><h2>{escape(title)}</h2>{content}</div>'


def sorted_categories(totals: Dict[str, Decimal]):
    """Categories by descending amount, ties by name."""
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


def render_summary_html(aggregate: Aggregate, start: date, end: date) -> str:
    """Render an expense aggregate as an HTML email body."""
    sections = [
        _section("Total Amount", f"<p><strong>{format_amount(aggregate.total_amount)}</strong></p>"),
        _section("Amount by Type", _table("Type", [
            ("Fixed", aggregate.total_by_type.fixed),
            ("Variable", aggregate.total_by_type.variable),
        ])),
    ]

    if aggregate.total_by_need_or_want is not None:
        sections.append(_section("Amount by Need or Want", _table("Need or Want", [
            ("Need", aggregate.total_by_need_or_want.need),
            ("Want", aggregate.total_by_need_or_want.want),
        ])))

    sections.append(_section("Amount by Frequency", _table("Period", sorted(aggregate.total_by_bucket.items()))))
    sections.append(_section("Amount by Category", _table("Category", sorted_categories(aggregate.total_by_category))))

    return (
        "<html><head><style>" + STYLE + "</style></head><body>"
        '<div class="container">'
        "<h1>Expense Summary</h1>"
        f"<p>{escape(start.isoformat())} to {escape(end.isoformat())}</p>"
        + "".join(sections) +
        "</div></body></html>"
    )
