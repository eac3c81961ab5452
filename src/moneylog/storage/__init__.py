"""Storage module."""
from .models import User, Category, Trip, Report, DeliveryRecord
from .repository import Repository
from .seeder import seed_database

__all__ = ["User", "Category", "Trip", "Report", "DeliveryRecord", "Repository", "seed_database"]
