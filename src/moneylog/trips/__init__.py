"""Trip statistics module."""
from .rollup import TripRollup, TripRollupBuilder, trip_duration

__all__ = ["TripRollup", "TripRollupBuilder", "trip_duration"]
