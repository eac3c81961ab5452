"""Pydantic schemas validating payloads at the boundary."""
import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from moneylog.utils.exceptions import ValidationError as MoneyLogValidationError

Kind = Literal["fixed", "variable"]
Frequency = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]
ReportType = Literal["weekly", "monthly", "yearly", "trip"]

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    direction: Literal["income", "expense"]
    threshold: Optional[Decimal] = Field(default=None, ge=0)


class IncomeIn(BaseModel):
    category_id: int
    amount: Decimal = Field(gt=0)
    source: str = Field(min_length=1)
    date: Optional[dt.date] = None
    kind: Kind


class ExpenseIn(BaseModel):
    category_id: int
    amount: Decimal = Field(gt=0)
    description: str = ""
    date: Optional[dt.date] = None
    kind: Kind
    need_or_want: Literal["need", "want"]


class TripIn(BaseModel):
    name: str = Field(min_length=1)
    start_date: dt.date
    end_date: Optional[dt.date] = None
    expense_ids: List[int] = Field(default_factory=list)

    @field_validator("expense_ids")
    @classmethod
    def dedupe_expense_ids(cls, value: List[int]) -> List[int]:
        """Keep first occurrence order."""
        return list(dict.fromkeys(value))


class ReportIn(BaseModel):
    type: ReportType
    stats: Dict[str, Any] = Field(default_factory=dict)


class TripFilterParams(BaseModel):
    """Query parameters of the filtered trip statistics."""
    start_date: dt.date
    end_date: dt.date
    frequency: Frequency

    @field_validator("frequency", mode="before")
    @classmethod
    def lower_frequency(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_range(self) -> "TripFilterParams":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


def validate_payload(schema: Type[SchemaT], data: Dict[str, Any]) -> SchemaT:
    """Validate a payload, raising MoneyLog's ValidationError on failure."""
    try:
        return schema(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        )
        raise MoneyLogValidationError(f"Invalid {schema.__name__}: {problems}")
