"""
Abstract Storage Interface

DESIGN DECISION: The wallet never talks to a database directly.
Persistence belongs to a hosted store; we define the operations we need
from it so that:
1. The Google Sheets backend and the in-memory backend are interchangeable
2. Tests run without network access
3. Business logic stays decoupled from the store's client library

The interface is intentionally simple - we're not building a full ORM.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from wallet.models.audit import AuditEvent
from wallet.models.finance import (
    Category,
    CategoryCreate,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    UserProfile,
)


class WalletStorageInterface(ABC):
    """
    Abstract interface for wallet storage operations.

    Any store implementation must implement these methods.
    """

    # -- profiles --------------------------------------------------------

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Return the user's profile, or None if it does not exist."""
        pass

    @abstractmethod
    async def ensure_profile(self, profile: UserProfile) -> tuple[UserProfile, bool]:
        """
        Idempotent upsert used at sign-in.

        Inserts `profile` if no profile with its id exists, otherwise
        leaves the stored one untouched.

        Returns:
            (stored_profile, created)
        """
        pass

    @abstractmethod
    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        pass

    # -- transactions ----------------------------------------------------

    @abstractmethod
    async def list_transactions(
        self,
        owner: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest `date` first.

        Args:
            owner: User whose transactions to list
            date_from: Keep transactions on or after this instant
            date_to: Keep transactions on or before this instant
        """
        pass

    @abstractmethod
    async def create_transaction(self, owner: str, data: TransactionCreate) -> Transaction:
        """
        Insert a transaction and return it with id and created_at.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, owner: str, transaction_id: str) -> bool:
        """Delete a transaction. Returns False if nothing was deleted."""
        pass

    # -- categories ------------------------------------------------------

    @abstractmethod
    async def list_categories(self, owner: Optional[str]) -> list[Category]:
        """List system defaults plus the categories owned by `owner`."""
        pass

    @abstractmethod
    async def create_category(self, owner: str, data: CategoryCreate) -> Category:
        """Insert a user category."""
        pass

    @abstractmethod
    async def delete_category(self, owner: str, category_id: str) -> bool:
        """
        Delete a category owned by `owner`.

        System defaults have no owner and are never deleted.
        Returns False if nothing was deleted.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if logged successfully."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one correlated flow, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
