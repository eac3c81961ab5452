"""Data models for stored records."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any


@dataclass
class User:
    """Report recipient."""
    id: int
    email: str


@dataclass
class Category:
    """User-defined income or expense category."""
    id: int
    owner_id: int
    name: str
    direction: str  # income | expense
    threshold: Optional[Decimal] = None


@dataclass
class Trip:
    """Named date span grouping a set of expenses."""
    id: int
    owner_id: int
    name: str
    start_date: date
    end_date: Optional[date] = None
    expense_ids: List[int] = field(default_factory=list)


@dataclass
class Report:
    """Frozen aggregate snapshot."""
    id: int
    owner_id: int
    type: str  # weekly | monthly | yearly | trip
    generated_at: datetime
    stats: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryRecord:
    """One report email sent for a user and period."""
    user_id: int
    period_key: str
    recipient: str
    status: str
    delivered_at: Optional[datetime] = None
