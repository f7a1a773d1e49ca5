"""
In-Memory Storage

Keeps everything in process memory. Used by the test-suite and for
running the wallet offline; nothing survives a restart.

System default categories are seeded on construction, the same way the
hosted store ships them.
"""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID, uuid4

from wallet.models.audit import AuditEvent
from wallet.models.finance import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryCreate,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    UserProfile,
)
from wallet.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    WalletStorageInterface,
)


class InMemoryWalletStorage(WalletStorageInterface):
    """Dictionary-backed implementation of the wallet store."""

    def __init__(self, categories: Optional[Iterable[Category]] = None):
        seed = DEFAULT_CATEGORIES if categories is None else categories
        self._profiles: dict[str, UserProfile] = {}
        self._transactions: dict[str, Transaction] = {}
        # Insertion order matters: system defaults come first
        self._categories: dict[str, Category] = {c.id: c for c in seed}

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    async def ensure_profile(self, profile: UserProfile) -> tuple[UserProfile, bool]:
        existing = self._profiles.get(profile.id)
        if existing is not None:
            return existing, False
        self._profiles[profile.id] = profile
        return profile, True

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        existing = self._profiles.get(user_id)
        if existing is None:
            raise NotFoundError(f"Profile not found: {user_id}")
        updated = update.apply_to(existing)
        self._profiles[user_id] = updated
        return updated

    async def list_transactions(
        self,
        owner: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        results = []
        for tx in self._transactions.values():
            if tx.owner != owner:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_to and tx.date > date_to:
                continue
            results.append(tx)

        results.sort(key=lambda t: t.date, reverse=True)
        return results

    async def create_transaction(self, owner: str, data: TransactionCreate) -> Transaction:
        tx = Transaction(
            id=str(uuid4()),
            owner=owner,
            created_at=datetime.now(),
            **data.model_dump(),
        )
        self._transactions[tx.id] = tx
        return tx

    async def delete_transaction(self, owner: str, transaction_id: str) -> bool:
        tx = self._transactions.get(transaction_id)
        if tx is None or tx.owner != owner:
            return False
        del self._transactions[transaction_id]
        return True

    async def list_categories(self, owner: Optional[str]) -> list[Category]:
        return [
            c for c in self._categories.values()
            if c.owner is None or (owner is not None and c.owner == owner)
        ]

    async def create_category(self, owner: str, data: CategoryCreate) -> Category:
        category = Category(id=str(uuid4()), owner=owner, **data.model_dump())
        self._categories[category.id] = category
        return category

    async def delete_category(self, owner: str, category_id: str) -> bool:
        category = self._categories.get(category_id)
        if category is None or category.owner is None or category.owner != owner:
            return False
        del self._categories[category_id]
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
