"""Demo data for a fresh database."""
from datetime import date
from typing import List

from .models import User
from .repository import Repository
from moneylog.utils.logger import get_logger

logger = get_logger()

DEMO_USERS = [
    # email, income category, expense category, income base, income step,
    # expense base, expense step, income day, expense day, trip
    ("user1@example.com", "Salary", "Rent", 5000, 100, 1500, 50, 1, 15,
     ("Vacation to Bali", date(2024, 6, 10), date(2024, 6, 20))),
    ("user2@example.com", "Freelance", "Groceries", 3000, 200, 1000, 100, 5, 20,
     ("Business Trip to New York", date(2024, 9, 15), date(2024, 9, 25))),
]


def seed_database(repository: Repository, year: int = 2024) -> List[User]:
    """Create two users with ten months of incomes and expenses and one trip each."""
    users = []

    for (email, income_name, expense_name, income_base, income_step,
         expense_base, expense_step, income_day, expense_day, trip) in DEMO_USERS:
        user = repository.add_user(email)
        income_category = repository.create_category(user.id, {"name": income_name, "direction": "income"})
        expense_category = repository.create_category(user.id, {"name": expense_name, "direction": "expense"})

        expense_ids = []
        for i in range(10):
            repository.create_income(user.id, {
                "category_id": income_category.id,
                "amount": income_base + i * income_step,
                "source": f"{income_name} {i + 1}",
                "date": date(year, i % 12 + 1, income_day),
                "kind": "fixed" if i % 2 == 0 else "variable",
            })
            expense = repository.create_expense(user.id, {
                "category_id": expense_category.id,
                "amount": expense_base + i * expense_step,
                "description": f"Expense {i + 1}",
                "date": date(year, i % 12 + 1, expense_day),
                "kind": "fixed" if i % 2 == 0 else "variable",
                "need_or_want": "need" if i % 2 == 0 else "want",
            })
            expense_ids.append(expense.id)

        trip_name, start_date, end_date = trip
        repository.create_trip(user.id, {
            "name": trip_name,
            "start_date": start_date.replace(year=year),
            "end_date": end_date.replace(year=year),
            "expense_ids": expense_ids[:5],
        })
        users.append(user)

    logger.info(f"Seeded {len(users)} demo users")
    return users
