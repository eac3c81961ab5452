"""SQLite storage for users, transactions, trips, reports and deliveries.

Every query on user-owned data is scoped by ``owner_id``. Transactions are
returned joined with their category name; the name is None when the
category has been deleted, since deletes never cascade to transactions.
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .models import User, Category, Trip, Report, DeliveryRecord
from moneylog.schemas import (
    CategoryIn, IncomeIn, ExpenseIn, TripIn, ReportIn, validate_payload
)
from moneylog.stats.models import Income, Expense
from moneylog.utils.dates import DateLike, parse_date, format_date
from moneylog.utils.exceptions import NotFoundError, StorageError, ValidationError
from moneylog.utils.logger import get_logger

logger = get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    direction TEXT NOT NULL,
    threshold TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS incomes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    category_id INTEGER,
    amount TEXT NOT NULL,
    source TEXT NOT NULL,
    date TEXT NOT NULL,
    kind TEXT NOT NULL,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    category_id INTEGER,
    amount TEXT NOT NULL,
    description TEXT,
    date TEXT NOT NULL,
    kind TEXT NOT NULL,
    need_or_want TEXT NOT NULL,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS trips (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT,
    created_at TEXT
);
CREATE TABLE IF NOT EXISTS trip_expenses (
    trip_id INTEGER NOT NULL,
    expense_id INTEGER NOT NULL UNIQUE,
    position INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    type TEXT NOT NULL,
    generated_at TEXT NOT NULL,
    stats TEXT
);
CREATE TABLE IF NOT EXISTS report_deliveries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    period_key TEXT NOT NULL,
    recipient TEXT NOT NULL,
    status TEXT NOT NULL,
    delivered_at TEXT,
    UNIQUE(user_id, period_key)
);
CREATE INDEX IF NOT EXISTS idx_categories_owner ON categories(owner_id);
CREATE INDEX IF NOT EXISTS idx_incomes_owner_date ON incomes(owner_id, date);
CREATE INDEX IF NOT EXISTS idx_expenses_owner_date ON expenses(owner_id, date);
CREATE INDEX IF NOT EXISTS idx_trips_owner ON trips(owner_id);
CREATE INDEX IF NOT EXISTS idx_reports_owner ON reports(owner_id);
"""

_EXPENSE_SELECT = """
    SELECT e.id, e.owner_id, e.category_id, e.amount, e.date, e.kind,
           c.name AS category_name, e.need_or_want, e.description
    FROM expenses e
    LEFT JOIN categories c ON c.id = e.category_id AND c.owner_id = e.owner_id
"""

_INCOME_SELECT = """
    SELECT i.id, i.owner_id, i.category_id, i.amount, i.date, i.kind,
           c.name AS category_name, i.source
    FROM incomes i
    LEFT JOIN categories c ON c.id = i.category_id AND c.owner_id = i.owner_id
"""


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Repository:
    """Owner-scoped persistence on a local SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and always close it."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}")

        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValidationError(f"Constraint violated: {e}")
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Database error: {e}")
        finally:
            conn.close()

    def _init_db(self):
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def add_user(self, email: str) -> User:
        email = (email or "").strip()
        if "@" not in email:
            raise ValidationError(f"Invalid email address: {email!r}")

        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (email, created_at) VALUES (?, ?)",
                (email, datetime.now().isoformat())
            )
            return User(id=cursor.lastrowid, email=email)

    def get_user(self, user_id: int) -> User:
        with self._connect() as conn:
            row = conn.execute("SELECT id, email FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return User(id=row["id"], email=row["email"])

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, email FROM users ORDER BY id").fetchall()
        return [User(id=r["id"], email=r["email"]) for r in rows]

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def create_category(self, owner_id: int, payload: Dict[str, Any]) -> Category:
        data = validate_payload(CategoryIn, payload)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO categories (owner_id, name, direction, threshold, created_at) VALUES (?, ?, ?, ?, ?)",
                (owner_id, data.name, data.direction, _decimal_text(data.threshold), datetime.now().isoformat())
            )
            category_id = cursor.lastrowid
        logger.info(f"Created {data.direction} category '{data.name}'")
        return Category(category_id, owner_id, data.name, data.direction, data.threshold)

    def list_categories(self, owner_id: int, direction: Optional[str] = None) -> List[Category]:
        query = "SELECT * FROM categories WHERE owner_id = ?"
        params: Tuple = (owner_id,)
        if direction:
            query += " AND direction = ?"
            params += (direction,)
        with self._connect() as conn:
            rows = conn.execute(query + " ORDER BY name", params).fetchall()
        return [_row_to_category(r) for r in rows]

    def get_category(self, owner_id: int, category_id: int) -> Category:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM categories WHERE id = ? AND owner_id = ?", (category_id, owner_id)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Category {category_id} not found")
        return _row_to_category(row)

    def update_category(self, owner_id: int, category_id: int, changes: Dict[str, Any]) -> Category:
        current = self.get_category(owner_id, category_id)
        merged = {"name": current.name, "direction": current.direction, "threshold": current.threshold}
        merged.update(changes)
        data = validate_payload(CategoryIn, merged)
        with self._connect() as conn:
            conn.execute(
                "UPDATE categories SET name = ?, direction = ?, threshold = ? WHERE id = ? AND owner_id = ?",
                (data.name, data.direction, _decimal_text(data.threshold), category_id, owner_id)
            )
        return Category(category_id, owner_id, data.name, data.direction, data.threshold)

    def delete_category(self, owner_id: int, category_id: int) -> None:
        """Delete a category; transactions keep their dangling reference."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ? AND owner_id = ?", (category_id, owner_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Category {category_id} not found")

    def _check_category(self, conn: sqlite3.Connection, owner_id: int, category_id: int, direction: str) -> None:
        row = conn.execute(
            "SELECT direction FROM categories WHERE id = ? AND owner_id = ?", (category_id, owner_id)
        ).fetchone()
        if row is None:
            raise ValidationError(f"Category {category_id} does not exist")
        if row["direction"] != direction:
            raise ValidationError(f"Category {category_id} is an {row['direction']} category, not {direction}")

    # ------------------------------------------------------------------
    # Incomes
    # ------------------------------------------------------------------
    def create_income(self, owner_id: int, payload: Dict[str, Any]) -> Income:
        data = validate_payload(IncomeIn, payload)
        txn_date = data.date or date.today()
        with self._connect() as conn:
            self._check_category(conn, owner_id, data.category_id, "income")
            cursor = conn.execute(
                "INSERT INTO incomes (owner_id, category_id, amount, source, date, kind, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (owner_id, data.category_id, str(data.amount), data.source,
                 txn_date.isoformat(), data.kind, datetime.now().isoformat())
            )
            income_id = cursor.lastrowid
        return self.get_income(owner_id, income_id)

    def list_incomes(self, owner_id: int) -> List[Income]:
        with self._connect() as conn:
            rows = conn.execute(
                _INCOME_SELECT + " WHERE i.owner_id = ? ORDER BY i.date DESC, i.id DESC", (owner_id,)
            ).fetchall()
        return [_row_to_income(r) for r in rows]

    def get_income(self, owner_id: int, income_id: int) -> Income:
        with self._connect() as conn:
            row = conn.execute(
                _INCOME_SELECT + " WHERE i.id = ? AND i.owner_id = ?", (income_id, owner_id)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Income {income_id} not found")
        return _row_to_income(row)

    def update_income(self, owner_id: int, income_id: int, changes: Dict[str, Any]) -> Income:
        current = self.get_income(owner_id, income_id)
        merged = {
            "category_id": current.category_id, "amount": current.amount, "source": current.source,
            "date": current.date, "kind": current.kind
        }
        merged.update(changes)
        data = validate_payload(IncomeIn, merged)
        with self._connect() as conn:
            if data.category_id != current.category_id:
                self._check_category(conn, owner_id, data.category_id, "income")
            conn.execute(
                "UPDATE incomes SET category_id = ?, amount = ?, source = ?, date = ?, kind = ? "
                "WHERE id = ? AND owner_id = ?",
                (data.category_id, str(data.amount), data.source,
                 (data.date or current.date).isoformat(), data.kind, income_id, owner_id)
            )
        return self.get_income(owner_id, income_id)

    def delete_income(self, owner_id: int, income_id: int) -> None:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM incomes WHERE id = ? AND owner_id = ?", (income_id, owner_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Income {income_id} not found")

    def fetch_incomes(self, owner_id: int, start: DateLike = None, end: DateLike = None) -> List[Income]:
        """Incomes joined with category names, optionally limited to a date range."""
        where, params = _range_clause("i", owner_id, start, end)
        if where is None:
            return []
        with self._connect() as conn:
            rows = conn.execute(_INCOME_SELECT + where + " ORDER BY i.date, i.id", params).fetchall()
        return [_row_to_income(r) for r in rows]

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------
    def create_expense(self, owner_id: int, payload: Dict[str, Any]) -> Expense:
        data = validate_payload(ExpenseIn, payload)
        txn_date = data.date or date.today()
        with self._connect() as conn:
            self._check_category(conn, owner_id, data.category_id, "expense")
            cursor = conn.execute(
                "INSERT INTO expenses (owner_id, category_id, amount, description, date, kind, need_or_want, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (owner_id, data.category_id, str(data.amount), data.description,
                 txn_date.isoformat(), data.kind, data.need_or_want, datetime.now().isoformat())
            )
            expense_id = cursor.lastrowid
        return self.get_expense(owner_id, expense_id)

    def list_expenses(self, owner_id: int) -> List[Expense]:
        with self._connect() as conn:
            rows = conn.execute(
                _EXPENSE_SELECT + " WHERE e.owner_id = ? ORDER BY e.date DESC, e.id DESC", (owner_id,)
            ).fetchall()
        return [_row_to_expense(r) for r in rows]

    def get_expense(self, owner_id: int, expense_id: int) -> Expense:
        with self._connect() as conn:
            row = conn.execute(
                _EXPENSE_SELECT + " WHERE e.id = ? AND e.owner_id = ?", (expense_id, owner_id)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        return _row_to_expense(row)

    def update_expense(self, owner_id: int, expense_id: int, changes: Dict[str, Any]) -> Expense:
        current = self.get_expense(owner_id, expense_id)
        merged = {
            "category_id": current.category_id, "amount": current.amount,
            "description": current.description, "date": current.date,
            "kind": current.kind, "need_or_want": current.need_or_want
        }
        merged.update(changes)
        data = validate_payload(ExpenseIn, merged)
        with self._connect() as conn:
            if data.category_id != current.category_id:
                self._check_category(conn, owner_id, data.category_id, "expense")
            conn.execute(
                "UPDATE expenses SET category_id = ?, amount = ?, description = ?, date = ?, kind = ?, "
                "need_or_want = ? WHERE id = ? AND owner_id = ?",
                (data.category_id, str(data.amount), data.description,
                 (data.date or current.date).isoformat(), data.kind, data.need_or_want,
                 expense_id, owner_id)
            )
        return self.get_expense(owner_id, expense_id)

    def delete_expense(self, owner_id: int, expense_id: int) -> None:
        """Delete an expense and drop it from any trip."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM expenses WHERE id = ? AND owner_id = ?", (expense_id, owner_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Expense {expense_id} not found")
            conn.execute("DELETE FROM trip_expenses WHERE expense_id = ?", (expense_id,))

    def fetch_expenses(self, owner_id: int, start: DateLike = None, end: DateLike = None) -> List[Expense]:
        """Expenses joined with category names, optionally limited to a date range."""
        where, params = _range_clause("e", owner_id, start, end)
        if where is None:
            return []
        with self._connect() as conn:
            rows = conn.execute(_EXPENSE_SELECT + where + " ORDER BY e.date, e.id", params).fetchall()
        return [_row_to_expense(r) for r in rows]

    # ------------------------------------------------------------------
    # Trips
    # ------------------------------------------------------------------
    def create_trip(self, owner_id: int, payload: Dict[str, Any]) -> Trip:
        data = validate_payload(TripIn, payload)
        with self._connect() as conn:
            self._check_trip_expenses(conn, owner_id, data.expense_ids, trip_id=None)
            cursor = conn.execute(
                "INSERT INTO trips (owner_id, name, start_date, end_date, created_at) VALUES (?, ?, ?, ?, ?)",
                (owner_id, data.name, data.start_date.isoformat(), format_date(data.end_date),
                 datetime.now().isoformat())
            )
            trip_id = cursor.lastrowid
            self._write_trip_expenses(conn, trip_id, data.expense_ids)
        logger.info(f"Created trip '{data.name}' with {len(data.expense_ids)} expenses")
        return self.get_trip(owner_id, trip_id)

    def list_trips(self, owner_id: int) -> List[Trip]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM trips WHERE owner_id = ? ORDER BY start_date DESC, id DESC", (owner_id,)
            ).fetchall()
            return [_row_to_trip(r, self._trip_expense_ids(conn, r["id"])) for r in rows]

    def get_trip(self, owner_id: int, trip_id: int) -> Trip:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM trips WHERE id = ? AND owner_id = ?", (trip_id, owner_id)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Trip {trip_id} not found")
            return _row_to_trip(row, self._trip_expense_ids(conn, trip_id))

    def update_trip(self, owner_id: int, trip_id: int, changes: Dict[str, Any]) -> Trip:
        current = self.get_trip(owner_id, trip_id)
        merged = {
            "name": current.name, "start_date": current.start_date,
            "end_date": current.end_date, "expense_ids": current.expense_ids
        }
        merged.update(changes)
        data = validate_payload(TripIn, merged)
        with self._connect() as conn:
            self._check_trip_expenses(conn, owner_id, data.expense_ids, trip_id=trip_id)
            conn.execute(
                "UPDATE trips SET name = ?, start_date = ?, end_date = ? WHERE id = ? AND owner_id = ?",
                (data.name, data.start_date.isoformat(), format_date(data.end_date), trip_id, owner_id)
            )
            conn.execute("DELETE FROM trip_expenses WHERE trip_id = ?", (trip_id,))
            self._write_trip_expenses(conn, trip_id, data.expense_ids)
        return self.get_trip(owner_id, trip_id)

    def delete_trip(self, owner_id: int, trip_id: int) -> None:
        """Delete a trip; its expenses are kept."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM trips WHERE id = ? AND owner_id = ?", (trip_id, owner_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Trip {trip_id} not found")
            conn.execute("DELETE FROM trip_expenses WHERE trip_id = ?", (trip_id,))

    def fetch_trips_with_expenses(self, owner_id: int) -> List[Tuple[Trip, List[Expense]]]:
        """Every trip of the owner paired with its expenses in trip order."""
        with self._connect() as conn:
            trip_rows = conn.execute(
                "SELECT * FROM trips WHERE owner_id = ? ORDER BY start_date DESC, id DESC", (owner_id,)
            ).fetchall()

            pairs = []
            for trip_row in trip_rows:
                expense_rows = conn.execute(
                    _EXPENSE_SELECT +
                    " JOIN trip_expenses te ON te.expense_id = e.id"
                    " WHERE te.trip_id = ? AND e.owner_id = ? ORDER BY te.position",
                    (trip_row["id"], owner_id)
                ).fetchall()
                expenses = [_row_to_expense(r) for r in expense_rows]
                trip = _row_to_trip(trip_row, [e.id for e in expenses])
                pairs.append((trip, expenses))
        return pairs

    def _check_trip_expenses(self, conn: sqlite3.Connection, owner_id: int,
                             expense_ids: List[int], trip_id: Optional[int]) -> None:
        """Expenses must belong to the owner and to no other trip."""
        for expense_id in expense_ids:
            row = conn.execute(
                "SELECT id FROM expenses WHERE id = ? AND owner_id = ?", (expense_id, owner_id)
            ).fetchone()
            if row is None:
                raise ValidationError(f"Expense {expense_id} does not exist")

            assigned = conn.execute(
                "SELECT trip_id FROM trip_expenses WHERE expense_id = ?", (expense_id,)
            ).fetchone()
            if assigned is not None and assigned["trip_id"] != trip_id:
                raise ValidationError(
                    f"Expense {expense_id} already belongs to trip {assigned['trip_id']}"
                )

    @staticmethod
    def _write_trip_expenses(conn: sqlite3.Connection, trip_id: int, expense_ids: List[int]) -> None:
        conn.executemany(
            "INSERT INTO trip_expenses (trip_id, expense_id, position) VALUES (?, ?, ?)",
            [(trip_id, expense_id, position) for position, expense_id in enumerate(expense_ids)]
        )

    @staticmethod
    def _trip_expense_ids(conn: sqlite3.Connection, trip_id: int) -> List[int]:
        rows = conn.execute(
            "SELECT expense_id FROM trip_expenses WHERE trip_id = ? ORDER BY position", (trip_id,)
        ).fetchall()
        return [r["expense_id"] for r in rows]

    # ------------------------------------------------------------------
    # Report snapshots
    # ------------------------------------------------------------------
    def create_report(self, owner_id: int, payload: Dict[str, Any]) -> Report:
        data = validate_payload(ReportIn, payload)
        generated_at = datetime.now()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO reports (owner_id, type, generated_at, stats) VALUES (?, ?, ?, ?)",
                (owner_id, data.type, generated_at.isoformat(), json.dumps(data.stats, default=_json_default))
            )
            report_id = cursor.lastrowid
        return self.get_report(owner_id, report_id)

    def list_reports(self, owner_id: int) -> List[Report]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM reports WHERE owner_id = ? ORDER BY generated_at DESC, id DESC", (owner_id,)
            ).fetchall()
        return [_row_to_report(r) for r in rows]

    def get_report(self, owner_id: int, report_id: int) -> Report:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reports WHERE id = ? AND owner_id = ?", (report_id, owner_id)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Report {report_id} not found")
        return _row_to_report(row)

    def update_report(self, owner_id: int, report_id: int, changes: Dict[str, Any]) -> Report:
        current = self.get_report(owner_id, report_id)
        merged = {"type": current.type, "stats": current.stats}
        merged.update(changes)
        data = validate_payload(ReportIn, merged)
        with self._connect() as conn:
            conn.execute(
                "UPDATE reports SET type = ?, stats = ? WHERE id = ? AND owner_id = ?",
                (data.type, json.dumps(data.stats, default=_json_default), report_id, owner_id)
            )
        return self.get_report(owner_id, report_id)

    def delete_report(self, owner_id: int, report_id: int) -> None:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM reports WHERE id = ? AND owner_id = ?", (report_id, owner_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Report {report_id} not found")

    # ------------------------------------------------------------------
    # Delivery log
    # ------------------------------------------------------------------
    def is_dispatched(self, user_id: int, period_key: str) -> bool:
        """Return True if this period was already handled for the user, whatever the outcome."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM report_deliveries WHERE user_id = ? AND period_key = ?",
                (user_id, period_key)
            ).fetchone()
        return row is not None

    def mark_delivered(self, record: DeliveryRecord) -> None:
        if record.delivered_at is None:
            record.delivered_at = datetime.now()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO report_deliveries (user_id, period_key, recipient, status, delivered_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (record.user_id, record.period_key, record.recipient, record.status,
                 record.delivered_at.isoformat())
            )

    def get_delivery_history(self, user_id: Optional[int] = None) -> List[DeliveryRecord]:
        query = "SELECT user_id, period_key, recipient, status, delivered_at FROM report_deliveries"
        params: Tuple = ()
        if user_id is not None:
            query += " WHERE user_id = ?"
            params = (user_id,)
        with self._connect() as conn:
            rows = conn.execute(query + " ORDER BY delivered_at DESC, id DESC", params).fetchall()
        return [
            DeliveryRecord(
                user_id=r["user_id"],
                period_key=r["period_key"],
                recipient=r["recipient"],
                status=r["status"],
                delivered_at=datetime.fromisoformat(r["delivered_at"]) if r["delivered_at"] else None
            )
            for r in rows
        ]

    def clear_deliveries(self, user_id: Optional[int] = None) -> int:
        with self._connect() as conn:
            if user_id is not None:
                cursor = conn.execute("DELETE FROM report_deliveries WHERE user_id = ?", (user_id,))
            else:
                cursor = conn.execute("DELETE FROM report_deliveries")
            return cursor.rowcount


def _decimal_text(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _range_clause(alias: str, owner_id: int, start: DateLike, end: DateLike) -> Tuple[Optional[str], Tuple]:
    """Build the WHERE clause for an owner and optional date range.

    Returns ``(None, ())`` when a bound is given but cannot be parsed.
    """
    where = f" WHERE {alias}.owner_id = ?"
    params: Tuple = (owner_id,)

    for bound, operator in ((start, ">="), (end, "<=")):
        if bound is None:
            continue
        parsed = parse_date(bound)
        if parsed is None:
            logger.warning(f"Unparseable date bound {bound!r}, returning no records")
            return None, ()
        where += f" AND {alias}.date {operator} ?"
        params += (parsed.isoformat(),)

    return where, params


def _row_to_category(row: sqlite3.Row) -> Category:
    return Category(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        direction=row["direction"],
        threshold=Decimal(row["threshold"]) if row["threshold"] is not None else None
    )


def _row_to_income(row: sqlite3.Row) -> Income:
    return Income(
        id=row["id"],
        owner_id=row["owner_id"],
        category_id=row["category_id"],
        amount=Decimal(row["amount"]),
        date=date.fromisoformat(row["date"]),
        kind=row["kind"],
        category_name=row["category_name"],
        source=row["source"]
    )


def _row_to_expense(row: sqlite3.Row) -> Expense:
    return Expense(
        id=row["id"],
        owner_id=row["owner_id"],
        category_id=row["category_id"],
        amount=Decimal(row["amount"]),
        date=date.fromisoformat(row["date"]),
        kind=row["kind"],
        category_name=row["category_name"],
        need_or_want=row["need_or_want"],
        description=row["description"] or ""
    )


def _row_to_trip(row: sqlite3.Row, expense_ids: List[int]) -> Trip:
    return Trip(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]) if row["end_date"] else None,
        expense_ids=expense_ids
    )


def _row_to_report(row: sqlite3.Row) -> Report:
    return Report(
        id=row["id"],
        owner_id=row["owner_id"],
        type=row["type"],
        generated_at=datetime.fromisoformat(row["generated_at"]),
        stats=json.loads(row["stats"]) if row["stats"] else {}
    )
