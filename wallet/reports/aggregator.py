"""
Report Aggregation

DESIGN DECISION: Reports are DETERMINISTIC folds over the session's
cached transactions. Nothing here talks to the store or the model;
the insight agent only ever sees what `insight_summary` returns.

Transactions whose category no longer exists have no type, so they
count towards no income or expense total.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from wallet.billing import shift_months
from wallet.config import get_settings
from wallet.models.finance import Category, Transaction, TransactionType
from wallet.models.reports import (
    CategoryTotal,
    InsightSummary,
    MonthlyTotal,
    PeriodSummary,
    StatsRange,
    StatsReport,
)

if TYPE_CHECKING:
    from wallet.session import WalletSession


DEFAULT_CATEGORY_COLOR = "#94a3b8"
DEFAULT_MONTHS_SHOWN = 4


def _category_index(categories: Iterable[Category]) -> dict[str, Category]:
    index = {}
    for category in categories:
        index.setdefault(category.id, category)
    return index


def summarize(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
) -> PeriodSummary:
    """Income and expense totals; the count includes every transaction."""
    index = _category_index(categories)
    income = Decimal("0")
    expense = Decimal("0")

    for tx in transactions:
        category = index.get(tx.category_id)
        if category is None:
            continue
        if category.type == TransactionType.INCOME:
            income += tx.amount
        else:
            expense += tx.amount

    return PeriodSummary(
        total_income=income,
        total_expense=expense,
        transaction_count=len(transactions),
    )


def cycle_summary(
    session: "WalletSession",
    now: Optional[datetime] = None,
) -> PeriodSummary:
    """Dashboard totals for the current billing cycle."""
    return summarize(session.current_cycle_transactions(now), session.categories)


def stats_range_start(now: datetime, stats_range: StatsRange) -> datetime:
    """
    Start of a statistics window.

    Transactions strictly AFTER this instant are in the window.
    """
    return shift_months(now, -stats_range.months)


def expense_breakdown(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    limit: Optional[int] = None,
) -> list[CategoryTotal]:
    """
    Largest expense categories first, grouped by category name.

    `limit` defaults to the STATS_TOP_CATEGORIES setting.
    """
    if limit is None:
        limit = get_settings().app.stats_top_categories
    index = _category_index(categories)
    totals: dict[str, Decimal] = defaultdict(Decimal)
    colors: dict[str, str] = {}

    for tx in transactions:
        category = index.get(tx.category_id)
        if category is None or category.type != TransactionType.EXPENSE:
            continue
        totals[category.name] += tx.amount
        colors.setdefault(category.name, category.color or DEFAULT_CATEGORY_COLOR)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(name=name, amount=amount, color=colors[name])
        for name, amount in ranked[:limit]
    ]


def monthly_totals(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    months: int = DEFAULT_MONTHS_SHOWN,
) -> list[MonthlyTotal]:
    """
    Income vs expense per calendar month.

    Chronological; only the last `months` months that have data.
    """
    index = _category_index(categories)
    buckets: dict[tuple[int, int], dict[str, Decimal]] = {}

    for tx in transactions:
        category = index.get(tx.category_id)
        if category is None:
            continue
        key = (tx.date.year, tx.date.month)
        bucket = buckets.setdefault(key, {"income": Decimal("0"), "expense": Decimal("0")})
        if category.type == TransactionType.INCOME:
            bucket["income"] += tx.amount
        else:
            bucket["expense"] += tx.amount

    keys = sorted(buckets)[-months:] if months > 0 else []
    return [
        MonthlyTotal(
            year=year,
            month=month,
            label=datetime(year, month, 1).strftime("%b"),
            income=buckets[(year, month)]["income"],
            expense=buckets[(year, month)]["expense"],
        )
        for year, month in keys
    ]


def build_stats(
    session: "WalletSession",
    stats_range: StatsRange,
    now: Optional[datetime] = None,
    top_categories: Optional[int] = None,
) -> StatsReport:
    """Everything the statistics screen shows for one range."""
    now = now or datetime.now()
    start = stats_range_start(now, stats_range)
    categories = session.categories
    in_range = [tx for tx in session.transactions if tx.date > start]

    return StatsReport(
        range=stats_range,
        start=start,
        summary=summarize(in_range, categories),
        expense_breakdown=expense_breakdown(in_range, categories, limit=top_categories),
        monthly=monthly_totals(in_range, categories),
    )


def insight_summary(
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    now: Optional[datetime] = None,
) -> InsightSummary:
    """Aggregates for the current calendar month, sent to the insight agent."""
    now = now or datetime.now()
    this_month = [
        tx for tx in transactions
        if tx.date.year == now.year and tx.date.month == now.month
    ]
    summary = summarize(this_month, categories)
    breakdown = {
        item.name: item.amount
        for item in expense_breakdown(this_month, categories, limit=len(this_month))
    }

    return InsightSummary(
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        savings=summary.balance,
        expense_breakdown=breakdown,
        transaction_count=summary.transaction_count,
    )
