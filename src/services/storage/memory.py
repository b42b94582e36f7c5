"""
In-Memory Storage Implementation

Keyed dicts per collection plus a secondary index by owning user.
Used directly in tests and as the base for the JSON file store,
which only adds load/persist hooks.

IDs come from a per-collection counter that only ever moves forward,
so a record's ID is never handed out twice. Counter bumps and inserts
happen under one asyncio.Lock.
"""

import asyncio
from typing import Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel

from src.models.audit import AuditEvent
from src.models.records import Holding, Transaction, User
from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateEmailError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

COLLECTIONS = ("users", "transactions", "holdings")


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store kept entirely in process memory.

    Nothing survives a restart; see JsonFileRecordStore for that.
    """

    def __init__(self):
        self._users: dict[int, User] = {}
        self._transactions: dict[int, Transaction] = {}
        self._holdings: dict[int, Holding] = {}
        self._counters: dict[str, int] = {name: 0 for name in COLLECTIONS}
        # owner user_id -> record IDs in insertion order
        self._transactions_by_user: dict[int, list[int]] = {}
        self._holdings_by_user: dict[int, list[int]] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Hooks for durable subclasses
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        """Write current state durably. No-op in memory."""
        pass

    def _commit(self, undo: Callable[[], None]) -> None:
        """Persist, rolling the in-memory change back if that fails."""
        try:
            self._persist()
        except Exception as e:
            undo()
            raise StorageError(f"Failed to persist records: {e}") from e

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_id(self, collection: str) -> int:
        self._counters[collection] += 1
        return self._counters[collection]

    def _find_user_by_email_unlocked(self, email: str) -> Optional[User]:
        wanted = email.strip().casefold()
        for user in self._users.values():
            if user.email.casefold() == wanted:
                return user
        return None

    def _insert_owned(
        self,
        collection: str,
        table: dict[int, RecordT],
        index: dict[int, list[int]],
        record: RecordT,
    ) -> RecordT:
        owner_id = record.user_id
        if owner_id not in self._users:
            raise NotFoundError(f"User not found: {owner_id}")

        stored = record.model_copy(update={"id": self._next_id(collection)})
        table[stored.id] = stored
        index.setdefault(owner_id, []).append(stored.id)

        def undo() -> None:
            del table[stored.id]
            index[owner_id].remove(stored.id)

        self._commit(undo)
        return stored

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(
        self,
        email: str,
        password_hash: str,
        name: str,
    ) -> User:
        async with self._lock:
            if self._find_user_by_email_unlocked(email) is not None:
                raise DuplicateEmailError(email.strip().lower())

            user = User(
                id=self._next_id("users"),
                email=email,
                password_hash=password_hash,
                name=name,
            )
            self._users[user.id] = user
            self._commit(lambda: self._users.pop(user.id))

        logger.info("user_created", user_id=user.id)
        return user

    async def find_user_by_email(self, email: str) -> Optional[User]:
        return self._find_user_by_email_unlocked(email)

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            stored = self._insert_owned(
                "transactions",
                self._transactions,
                self._transactions_by_user,
                transaction,
            )
        logger.debug("transaction_stored", transaction_id=stored.id, user_id=stored.user_id)
        return stored

    async def list_transactions(self, user_id: int) -> list[Transaction]:
        ids = self._transactions_by_user.get(user_id, [])
        return [self._transactions[txn_id] for txn_id in ids]

    # ------------------------------------------------------------------
    # Holdings
    # ------------------------------------------------------------------

    async def add_holding(self, holding: Holding) -> Holding:
        async with self._lock:
            stored = self._insert_owned(
                "holdings",
                self._holdings,
                self._holdings_by_user,
                holding,
            )
        logger.debug("holding_stored", holding_id=stored.id, user_id=stored.user_id)
        return stored

    async def list_holdings(self, user_id: int) -> list[Holding]:
        ids = self._holdings_by_user.get(user_id, [])
        return [self._holdings[holding_id] for holding_id in ids]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit trail kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_for_user(self, user_id: int) -> list[AuditEvent]:
        return [e for e in self._events if e.user_id == user_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        # Append order is chronological
        return list(reversed(self._events))[:limit]
