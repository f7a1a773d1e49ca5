"""
Report Models

Aggregates computed from the session's cached transactions for the
dashboard, the statistics screen and the monthly insight.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class StatsRange(str, Enum):
    """Look-back windows offered by the statistics screen."""
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"

    @property
    def months(self) -> int:
        return {"1M": 1, "3M": 3, "6M": 6, "1Y": 12}[self.value]


class PeriodSummary(BaseModel):
    """Income, expense and balance over some set of transactions."""

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


class CategoryTotal(BaseModel):
    """Amount spent in one category."""

    name: str
    amount: Decimal
    color: str


class MonthlyTotal(BaseModel):
    """Income vs expense for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    label: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class StatsReport(BaseModel):
    """Everything the statistics screen shows for one range."""

    range: StatsRange
    start: datetime
    summary: PeriodSummary
    expense_breakdown: list[CategoryTotal] = Field(default_factory=list)
    monthly: list[MonthlyTotal] = Field(default_factory=list)


class InsightSummary(BaseModel):
    """
    Compact view of the current month sent to the insight model.

    Only aggregates leave the device; individual transactions do not.
    """

    total_income: Decimal
    total_expense: Decimal
    savings: Decimal
    expense_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = Field(ge=0)


class FinancialInsight(BaseModel):
    """AI-written commentary on the month."""

    analysis: str
    recommendations: list[str] = Field(default_factory=list)
