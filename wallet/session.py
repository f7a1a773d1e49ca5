"""
Wallet Session

The signed-in user's application state: profile, transactions and
categories, cached after sign-in and kept in step with the store.

DESIGN DECISION: State is held in one explicit object that is passed to
the flows, not in module globals. A closed session refuses every call.

CRITICAL: The cache is updated only AFTER the store confirms a write.
A failed write leaves the cache exactly as it was.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from wallet.audit import AuditLogger
from wallet.billing import filter_cycle_transactions, get_billing_cycle
from wallet.config import get_settings
from wallet.models.finance import (
    BillingCycle,
    Category,
    CategoryCreate,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    UserProfile,
)
from wallet.services.storage import WalletStorageInterface


logger = structlog.get_logger(__name__)

UNKNOWN_CATEGORY_LABEL = "Unknown"


class SessionError(Exception):
    """Base exception for session errors."""
    pass


class SessionClosedError(SessionError):
    """The session was closed (user signed out)."""

    def __init__(self):
        super().__init__("Session is closed; sign in again")


class ImmutableCategoryError(SessionError):
    """System default categories cannot be changed by the client."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category {category_id} is a system default and cannot be deleted")


class WalletSession:
    """
    One signed-in user's cached wallet state.

    Create with `await WalletSession.open(...)`.
    """

    def __init__(
        self,
        storage: WalletStorageInterface,
        profile: UserProfile,
        transactions: list[Transaction],
        categories: list[Category],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._profile = profile
        self._transactions = list(transactions)
        self._categories = list(categories)
        self._audit = audit_logger or AuditLogger()
        self._closed = False

    @classmethod
    async def open(
        cls,
        storage: WalletStorageInterface,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
        billing_start_day: Optional[int] = None,
    ) -> "WalletSession":
        """
        Sign in: make sure a profile exists, then load the user's data.

        The profile upsert is idempotent. A first sign-in creates the
        profile with the email's local part as name and the start day
        given here, or DEFAULT_BILLING_START_DAY when none is given.
        An existing profile keeps its own start day.
        """
        audit_logger = audit_logger or AuditLogger()

        profile, created = await storage.ensure_profile(UserProfile(
            id=user_id,
            email=email,
            full_name=full_name or email.split("@", 1)[0],
            billing_start_day=billing_start_day or get_settings().app.default_billing_start_day,
        ))
        if created:
            await audit_logger.log_profile_created(user_id=user_id, email=email)

        transactions = await storage.list_transactions(user_id)
        categories = await storage.list_categories(user_id)

        await audit_logger.log_session_opened(
            user_id=user_id,
            transaction_count=len(transactions),
            category_count=len(categories),
        )
        return cls(storage, profile, transactions, categories, audit_logger)

    async def close(self) -> None:
        """Sign out and drop the cached data."""
        if self._closed:
            return
        user_id = self._profile.id
        self._transactions.clear()
        self._categories.clear()
        self._closed = True
        await self._audit.log_session_closed(user_id=user_id)

    def _require_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def profile(self) -> UserProfile:
        self._require_open()
        return self._profile

    @property
    def user_id(self) -> str:
        return self.profile.id

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def transactions(self) -> list[Transaction]:
        """Cached transactions, newest first."""
        self._require_open()
        return sorted(self._transactions, key=lambda t: t.date, reverse=True)

    @property
    def categories(self) -> list[Category]:
        """System defaults followed by the user's own categories."""
        self._require_open()
        return list(self._categories)

    def category_for(self, transaction: Transaction) -> Optional[Category]:
        self._require_open()
        for category in self._categories:
            if category.id == transaction.category_id:
                return category
        return None

    def category_label(self, transaction: Transaction) -> str:
        category = self.category_for(transaction)
        return category.name if category else UNKNOWN_CATEGORY_LABEL

    def billing_cycle(self, now: Optional[datetime] = None) -> BillingCycle:
        self._require_open()
        return get_billing_cycle(now or datetime.now(), self._profile.billing_start_day)

    def current_cycle_transactions(self, now: Optional[datetime] = None) -> list[Transaction]:
        """Transactions in the current billing cycle, newest first."""
        return filter_cycle_transactions(self.transactions, self.billing_cycle(now))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        data: TransactionCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Create a transaction in the store, then cache it.

        Raises whatever the store raises; the cache is untouched then.
        """
        self._require_open()
        tx = await self._storage.create_transaction(self._profile.id, data)
        self._transactions.append(tx)

        await self._audit.log_transaction_created(
            user_id=self._profile.id,
            transaction_id=tx.id,
            category_id=tx.category_id,
            amount=str(tx.amount),
            correlation_id=correlation_id,
        )
        return tx

    async def delete_transaction(self, transaction_id: str) -> bool:
        self._require_open()
        deleted = await self._storage.delete_transaction(self._profile.id, transaction_id)
        if deleted:
            self._transactions = [t for t in self._transactions if t.id != transaction_id]
            await self._audit.log_transaction_deleted(
                user_id=self._profile.id,
                transaction_id=transaction_id,
            )
        return deleted

    async def add_category(self, data: CategoryCreate) -> Category:
        self._require_open()
        category = await self._storage.create_category(self._profile.id, data)
        self._categories.append(category)
        await self._audit.log_category_created(
            user_id=self._profile.id,
            category_id=category.id,
            name=category.name,
        )
        return category

    async def delete_category(self, category_id: str) -> bool:
        """
        Delete one of the user's own categories.

        Transactions pointing at it are kept and show up as "Unknown".

        Raises:
            ImmutableCategoryError: for a system default
        """
        self._require_open()
        for category in self._categories:
            if category.id == category_id and category.is_system_default:
                raise ImmutableCategoryError(category_id)

        deleted = await self._storage.delete_category(self._profile.id, category_id)
        if deleted:
            self._categories = [c for c in self._categories if c.id != category_id]
            await self._audit.log_category_deleted(
                user_id=self._profile.id,
                category_id=category_id,
            )
        return deleted

    async def update_profile(self, update: ProfileUpdate) -> UserProfile:
        self._require_open()
        changed = sorted(update.model_dump(exclude_unset=True, exclude_none=True))
        if not changed:
            return self._profile

        self._profile = await self._storage.update_profile(self._profile.id, update)
        await self._audit.log_profile_updated(
            user_id=self._profile.id,
            changed_fields=changed,
        )
        logger.info("profile_updated", user_id=self._profile.id, fields=changed)
        return self._profile
