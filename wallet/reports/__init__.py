"""Reporting package."""

from wallet.reports.aggregator import (
    DEFAULT_CATEGORY_COLOR,
    build_stats,
    cycle_summary,
    expense_breakdown,
    insight_summary,
    monthly_totals,
    stats_range_start,
    summarize,
)

__all__ = [
    "DEFAULT_CATEGORY_COLOR",
    "build_stats",
    "cycle_summary",
    "expense_breakdown",
    "insight_summary",
    "monthly_totals",
    "stats_range_start",
    "summarize",
]
