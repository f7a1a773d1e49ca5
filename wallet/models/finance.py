"""
Core Data Models for the Wallet

These models define the schemas for the records the wallet keeps:
categories, transactions and the user's profile, plus the derived
billing cycle.

DESIGN DECISION: Records are owned by the hosted store. The models here
validate what we send to it and what it sends back, so a bad row fails
loudly at the boundary instead of somewhere in a report.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Whether a category collects money coming in or going out."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class CategoryIcon(str, Enum):
    """
    Icons a category can display.

    The names match the icon set the mobile and web clients render.
    """
    UTENSILS = "Utensils"
    CAR = "Car"
    SHOPPING_BAG = "ShoppingBag"
    FILM = "Film"
    ZAP = "Zap"
    BRIEFCASE = "Briefcase"
    LAPTOP = "Laptop"
    TRENDING_UP = "TrendingUp"
    HOME = "Home"
    GIFT = "Gift"
    COFFEE = "Coffee"
    SMARTPHONE = "Smartphone"
    WIFI = "Wifi"
    CREDIT_CARD = "CreditCard"
    DOLLAR_SIGN = "DollarSign"
    HEART = "Heart"
    TAG = "Tag"


HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{3,8}$"


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryCreate(BaseModel):
    """Payload for creating a user category (id and owner come from the store)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    type: TransactionType
    icon: CategoryIcon = CategoryIcon.TAG
    color: Optional[str] = Field(
        default=None,
        pattern=HEX_COLOR_PATTERN,
        description="Hex colour used by charts"
    )


class Category(CategoryCreate):
    """
    A named bucket classifying a transaction as income or expense.

    CRITICAL: Categories without an owner are system defaults.
    There is nobody to authorize their deletion against, so clients
    must treat them as read-only.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store identity"
    )
    owner: Optional[str] = Field(
        default=None,
        description="Owning user, or None for system defaults"
    )

    @property
    def is_system_default(self) -> bool:
        return self.owner is None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionCreate(BaseModel):
    """Payload for recording a transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: str = Field(
        ...,
        min_length=1,
        description="Category this transaction belongs to"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount, currency-agnostic"
    )
    note: str = Field(
        default="",
        max_length=500,
        description="Free text note, may be empty"
    )
    date: datetime = Field(
        ...,
        description="Economic date of the transaction"
    )


class Transaction(TransactionCreate):
    """
    A recorded income or expense.

    `date` is when the money moved; `created_at` is when the row was
    written. A dangling `category_id` is tolerated and rendered as "Unknown".
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store identity"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="User the transaction belongs to"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the record was created"
    )


# =============================================================================
# PROFILE
# =============================================================================

class UserProfile(BaseModel):
    """The signed-in user's profile. Mutable by its owner only."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    full_name: str = Field(default="", max_length=200)
    avatar_url: Optional[str] = None
    billing_start_day: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month the billing cycle starts on"
    )


class ProfileUpdate(BaseModel):
    """Partial profile update. Unset fields are left alone."""
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: Optional[str] = Field(default=None, max_length=200)
    avatar_url: Optional[str] = None
    billing_start_day: Optional[int] = Field(default=None, ge=1, le=31)

    def apply_to(self, profile: UserProfile) -> UserProfile:
        """Return a copy of `profile` with the set fields replaced."""
        changes = self.model_dump(exclude_unset=True, exclude_none=True)
        return profile.model_copy(update=changes)


# =============================================================================
# BILLING CYCLE (derived, never persisted)
# =============================================================================

class BillingCycle(BaseModel):
    """
    The user's current billing period.

    Both ends are inclusive: `start` is midnight of the first day and
    `end` is the last millisecond of the last day.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_order(self) -> 'BillingCycle':
        if self.end < self.start:
            raise ValueError("Billing cycle end cannot be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


# =============================================================================
# SYSTEM DEFAULTS
# =============================================================================

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    # Expenses
    Category(id="c1", name="Food & Dining", type=TransactionType.EXPENSE,
             icon=CategoryIcon.UTENSILS, color="#ef4444"),
    Category(id="c2", name="Transport", type=TransactionType.EXPENSE,
             icon=CategoryIcon.CAR, color="#f97316"),
    Category(id="c3", name="Shopping", type=TransactionType.EXPENSE,
             icon=CategoryIcon.SHOPPING_BAG, color="#eab308"),
    Category(id="c4", name="Entertainment", type=TransactionType.EXPENSE,
             icon=CategoryIcon.FILM, color="#8b5cf6"),
    Category(id="c5", name="Bills & Utilities", type=TransactionType.EXPENSE,
             icon=CategoryIcon.ZAP, color="#64748b"),
    # Income
    Category(id="c6", name="Salary", type=TransactionType.INCOME,
             icon=CategoryIcon.BRIEFCASE, color="#10b981"),
    Category(id="c7", name="Freelance", type=TransactionType.INCOME,
             icon=CategoryIcon.LAPTOP, color="#06b6d4"),
    Category(id="c8", name="Investments", type=TransactionType.INCOME,
             icon=CategoryIcon.TRENDING_UP, color="#3b82f6"),
)
