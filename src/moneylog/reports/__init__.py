"""Report rendering and dispatch module."""
from .dispatcher import ReportDispatcher, DispatchResult
from .renderer import render_summary_html, build_subject

__all__ = ["ReportDispatcher", "DispatchResult", "render_summary_html", "build_subject"]
