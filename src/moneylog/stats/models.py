"""Data models for transactions and aggregates."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Any

from moneylog.utils.exceptions import ValidationError

KINDS = ("fixed", "variable")
NEED_OR_WANT = ("need", "want")


@dataclass
class Transaction:
    """Dated, categorized amount owned by one user.

    ``category_name`` is resolved by the storage layer and is None when the
    referenced category no longer exists.
    """
    id: Optional[int]
    owner_id: int
    category_id: Optional[int]
    amount: Decimal
    date: date
    kind: str
    category_name: Optional[str] = None

    direction = "expense"


@dataclass
class Income(Transaction):
    """Income entry."""
    source: str = ""

    direction = "income"


@dataclass
class Expense(Transaction):
    """Expense entry."""
    need_or_want: Optional[str] = None
    description: str = ""

    direction = "expense"


def _money(value) -> Any:
    return float(value) if isinstance(value, Decimal) else value


@dataclass
class TypeTotals:
    """Totals by fixed/variable kind."""
    fixed: Decimal = Decimal("0")
    variable: Decimal = Decimal("0")

    def add(self, kind: str, amount: Decimal) -> None:
        if kind not in KINDS:
            raise ValidationError(f"Unknown transaction type: {kind!r}")
        setattr(self, kind, getattr(self, kind) + amount)

    def total(self) -> Decimal:
        return self.fixed + self.variable

    def to_dict(self) -> Dict[str, Any]:
        return {"fixed": _money(self.fixed), "variable": _money(self.variable)}


@dataclass
class NeedWantTotals:
    """Totals by need/want classification (expenses only)."""
    need: Decimal = Decimal("0")
    want: Decimal = Decimal("0")

    def add(self, need_or_want: str, amount: Decimal) -> None:
        if need_or_want not in NEED_OR_WANT:
            raise ValidationError(f"Unknown need/want value: {need_or_want!r}")
        setattr(self, need_or_want, getattr(self, need_or_want) + amount)

    def total(self) -> Decimal:
        return self.need + self.want

    def to_dict(self) -> Dict[str, Any]:
        return {"need": _money(self.need), "want": _money(self.want)}


@dataclass
class Aggregate:
    """Multi-axis summary of a transaction set."""
    total_amount: Decimal = Decimal("0")
    total_by_type: TypeTotals = field(default_factory=TypeTotals)
    total_by_need_or_want: Optional[NeedWantTotals] = None
    total_by_bucket: Dict[str, Decimal] = field(default_factory=dict)
    total_by_category: Dict[str, Decimal] = field(default_factory=dict)
    transaction_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.transaction_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        data = {
            "totalAmount": _money(self.total_amount),
            "totalAmountByType": self.total_by_type.to_dict(),
            "totalAmountByFrequency": {k: _money(v) for k, v in self.total_by_bucket.items()},
            "totalAmountByCategory": {k: _money(v) for k, v in self.total_by_category.items()},
        }
        if self.total_by_need_or_want is not None:
            data["totalAmountByNeedOrWant"] = self.total_by_need_or_want.to_dict()
        return data
