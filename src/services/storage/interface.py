"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep records in memory for tests
2. Persist to a local JSON file for real use

The interface is intentionally simple - we're not building a full ORM.
Just keyed collections of users, transactions and holdings, each
scoped by the owning user's ID.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.models.audit import AuditEvent
from src.models.records import Holding, Transaction, User


class RecordStoreInterface(ABC):
    """
    Abstract interface for user, transaction and holding storage.

    Every write returns only once the record is visible to
    subsequent reads. IDs are assigned by the store, never by callers.
    """

    @abstractmethod
    async def create_user(
        self,
        email: str,
        password_hash: str,
        name: str,
    ) -> User:
        """
        Create a new user.

        Args:
            email: Login email (compared case-insensitively)
            password_hash: Already-hashed credential
            name: Display name

        Returns:
            The stored User with its assigned ID

        Raises:
            DuplicateEmailError: If the email is already registered.
                The store is left unchanged.
        """
        pass

    @abstractmethod
    async def find_user_by_email(self, email: str) -> Optional[User]:
        """
        Look up a user by email (case-insensitive).

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        """Look up a user by ID."""
        pass

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Store a transaction.

        Any ID on the incoming record is ignored and a fresh one assigned.

        Raises:
            NotFoundError: If the owning user does not exist
        """
        pass

    @abstractmethod
    async def list_transactions(self, user_id: int) -> list[Transaction]:
        """
        List all transactions owned by a user, in insertion order.

        Never returns records belonging to any other user.
        """
        pass

    @abstractmethod
    async def add_holding(self, holding: Holding) -> Holding:
        """
        Store a holding.

        Raises:
            NotFoundError: If the owning user does not exist
        """
        pass

    @abstractmethod
    async def list_holdings(self, user_id: int) -> list[Holding]:
        """List all holdings owned by a user, in insertion order."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_for_user(self, user_id: int) -> list[AuditEvent]:
        """Get all events recorded for a user, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
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


class DuplicateEmailError(DuplicateError):
    """A user with this email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already registered: {email}")


class ConnectionError(StorageError):
    """Could not open or read the storage backend."""
    pass
