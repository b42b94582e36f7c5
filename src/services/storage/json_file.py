"""
Local JSON File Storage Implementation

DESIGN DECISION: A single JSON file on the user's machine is the durable
backend because:
1. All data stays local to the client - no server, no account to set up
2. The user can open and back up the file themselves
3. Data volumes for one person are tiny

TRADEOFFS:
- The whole file is rewritten on every insert (fine at personal scale)
- No cross-record transactions (each insert is committed on its own)

Layout:
    {
      "version": 1,
      "counters": {"users": N, "transactions": N, "holdings": N},
      "users": [...], "transactions": [...], "holdings": [...]
    }

The owner index is not stored; it is rebuilt on load.
"""

import json
import os
from pathlib import Path
from typing import Union

import structlog
from pydantic import ValidationError

from src.models.records import Holding, Transaction, User
from src.services.storage.interface import ConnectionError
from src.services.storage.memory import COLLECTIONS, InMemoryRecordStore

logger = structlog.get_logger(__name__)

FILE_FORMAT_VERSION = 1


class JsonFileRecordStore(InMemoryRecordStore):
    """
    Record store persisted to a local JSON file.

    Reads are served from memory. Every write rewrites the file through
    a temp file + os.replace, and returns only after the data is flushed.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Load existing data, if any. A missing file means an empty store."""
        if not self._path.exists():
            return

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            users = [User.model_validate(row) for row in data.get("users", [])]
            transactions = [
                Transaction.model_validate(row) for row in data.get("transactions", [])
            ]
            holdings = [Holding.model_validate(row) for row in data.get("holdings", [])]
            counters = {
                name: int(data.get("counters", {}).get(name, 0)) for name in COLLECTIONS
            }
        except (
            OSError,
            json.JSONDecodeError,
            ValidationError,
            AttributeError,
            TypeError,
            ValueError,
        ) as e:
            raise ConnectionError(f"Could not read data file {self._path}: {e}")

        self._check_integrity(users, transactions, holdings)

        for user in users:
            self._users[user.id] = user
        for txn in transactions:
            self._transactions[txn.id] = txn
            self._transactions_by_user.setdefault(txn.user_id, []).append(txn.id)
        for holding in holdings:
            self._holdings[holding.id] = holding
            self._holdings_by_user.setdefault(holding.user_id, []).append(holding.id)

        # Never hand out an ID at or below one already on disk,
        # even if the stored counter is missing or stale.
        tables = {
            "users": self._users,
            "transactions": self._transactions,
            "holdings": self._holdings,
        }
        for name in COLLECTIONS:
            highest = max(tables[name].keys(), default=0)
            self._counters[name] = max(counters[name], highest)

        logger.info(
            "records_loaded",
            path=str(self._path),
            users=len(users),
            transactions=len(transactions),
            holdings=len(holdings),
        )

    def _check_integrity(
        self,
        users: list[User],
        transactions: list[Transaction],
        holdings: list[Holding],
    ) -> None:
        """
        Reject files that break the store's own guarantees.

        Raises:
            ConnectionError: On a missing or repeated ID, a repeated email,
                or a record whose owner is not in the file
        """
        def fail(reason: str) -> None:
            raise ConnectionError(f"Inconsistent data file {self._path}: {reason}")

        for name, rows in (
            ("users", users),
            ("transactions", transactions),
            ("holdings", holdings),
        ):
            seen: set[int] = set()
            for row in rows:
                if row.id is None:
                    fail(f"{name} row without an id")
                if row.id in seen:
                    fail(f"duplicate {name} id {row.id}")
                seen.add(row.id)

        emails: set[str] = set()
        for user in users:
            email = user.email.casefold()
            if email in emails:
                fail(f"duplicate email {user.email}")
            emails.add(email)

        user_ids = {user.id for user in users}
        for name, rows in (("transactions", transactions), ("holdings", holdings)):
            for row in rows:
                if row.user_id not in user_ids:
                    fail(f"{name} id {row.id} belongs to unknown user {row.user_id}")

    def _snapshot(self) -> dict:
        return {
            "version": FILE_FORMAT_VERSION,
            "counters": dict(self._counters),
            "users": [u.model_dump(mode="json") for u in self._users.values()],
            "transactions": [
                t.model_dump(mode="json") for t in self._transactions.values()
            ],
            "holdings": [h.model_dump(mode="json") for h in self._holdings.values()],
        }

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._snapshot(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, self._path)
