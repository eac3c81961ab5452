"""MoneyLog: personal finance statistics and scheduled expense summaries."""

__version__ = "0.1.0"
