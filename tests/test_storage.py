"""
Tests for the record stores.

The in-memory store and the JSON file store share behaviour; the JSON
store is additionally checked for durability across reloads.
"""

import asyncio
import json
from decimal import Decimal

import pytest

from src.services.storage import (
    ConnectionError,
    DuplicateEmailError,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    StorageError,
)
from src.models.audit import AuditEventBuilder

from tests.conftest import make_holding, make_transaction


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryRecordStore()
    return JsonFileRecordStore(tmp_path / "finance.json")


class TestUsers:
    """Tests shared by every record store."""

    @pytest.mark.asyncio
    async def test_create_and_find_user(self, any_store):
        """Test creating a user and finding them by email or ID."""
        user = await any_store.create_user("Alice@Gmail.com", "hash", "Alice")
        assert user.id == 1
        assert user.email == "alice@gmail.com"

        found = await any_store.find_user_by_email("ALICE@gmail.com")
        assert found == user
        assert await any_store.get_user(user.id) == user

    @pytest.mark.asyncio
    async def test_unknown_user(self, any_store):
        """Test lookups for users that do not exist."""
        assert await any_store.find_user_by_email("nobody@gmail.com") is None
        assert await any_store.get_user(99) is None

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected_without_mutation(self, any_store):
        """Test that a case-variant duplicate fails and leaves the store as it was."""
        first = await any_store.create_user("alice@gmail.com", "hash1", "Alice")

        with pytest.raises(DuplicateEmailError) as exc_info:
            await any_store.create_user("ALICE@GMAIL.COM", "hash2", "Impostor")
        assert exc_info.value.email == "alice@gmail.com"

        found = await any_store.find_user_by_email("alice@gmail.com")
        assert found.name == "Alice"
        assert found.password_hash == "hash1"

        # The failed attempt did not consume an ID
        second = await any_store.create_user("bob@gmail.com", "hash3", "Bob")
        assert second.id == first.id + 1

    @pytest.mark.asyncio
    async def test_duplicate_email_is_a_storage_error(self, any_store):
        """Test that DuplicateEmailError is a StorageError."""
        await any_store.create_user("alice@gmail.com", "hash", "Alice")
        with pytest.raises(StorageError):
            await any_store.create_user("alice@gmail.com", "hash", "Alice")


class TestOwnedRecords:

    @pytest.mark.asyncio
    async def test_ids_assigned_and_unique(self, any_store):
        """Test that stored records get distinct IDs."""
        user = await any_store.create_user("alice@gmail.com", "hash", "Alice")
        first = await any_store.add_transaction(make_transaction("10", user_id=user.id))
        second = await any_store.add_transaction(make_transaction("20", user_id=user.id))
        assert first.id is not None
        assert second.id is not None
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_owner(self, any_store):
        """Test that one user's records never show up for another."""
        alice = await any_store.create_user("alice@gmail.com", "hash", "Alice")
        bob = await any_store.create_user("bob@gmail.com", "hash", "Bob")

        await any_store.add_transaction(make_transaction("10", user_id=alice.id))
        await any_store.add_transaction(make_transaction("99", user_id=bob.id))
        await any_store.add_transaction(make_transaction("20", user_id=alice.id))
        await any_store.add_holding(make_holding("AAPL", "1", "100", user_id=bob.id))

        alice_txns = await any_store.list_transactions(alice.id)
        assert [t.amount for t in alice_txns] == [Decimal("10"), Decimal("20")]
        assert all(t.user_id == alice.id for t in alice_txns)

        assert await any_store.list_holdings(alice.id) == []
        bob_holdings = await any_store.list_holdings(bob.id)
        assert [h.symbol for h in bob_holdings] == ["AAPL"]

    @pytest.mark.asyncio
    async def test_list_for_user_without_records(self, any_store):
        """Test listing for a user with no records."""
        user = await any_store.create_user("alice@gmail.com", "hash", "Alice")
        assert await any_store.list_transactions(user.id) == []
        assert await any_store.list_holdings(user.id) == []

    @pytest.mark.asyncio
    async def test_unknown_owner_rejected(self, any_store):
        """Test that records for a missing user are refused."""
        with pytest.raises(NotFoundError):
            await any_store.add_transaction(make_transaction("10", user_id=42))
        with pytest.raises(NotFoundError):
            await any_store.add_holding(make_holding("AAPL", "1", "100", user_id=42))

    @pytest.mark.asyncio
    async def test_concurrent_inserts_get_distinct_ids(self, any_store):
        """Test that concurrent inserts never share an ID."""
        user = await any_store.create_user("alice@gmail.com", "hash", "Alice")
        stored = await asyncio.gather(
            *(any_store.add_transaction(make_transaction(str(i), user_id=user.id)) for i in range(20))
        )
        ids = [t.id for t in stored]
        assert len(set(ids)) == 20
        assert len(await any_store.list_transactions(user.id)) == 20


class TestPersistFailure:

    @pytest.mark.asyncio
    async def test_failed_persist_rolls_back(self):
        """Test that a write that cannot be persisted leaves no trace."""

        class BrokenStore(InMemoryRecordStore):
            fail = False

            def _persist(self):
                if self.fail:
                    raise OSError("disk full")

        store = BrokenStore()
        user = await store.create_user("alice@gmail.com", "hash", "Alice")
        store.fail = True

        with pytest.raises(StorageError):
            await store.add_transaction(make_transaction("10", user_id=user.id))
        with pytest.raises(StorageError):
            await store.create_user("bob@gmail.com", "hash", "Bob")

        assert await store.list_transactions(user.id) == []
        assert await store.find_user_by_email("bob@gmail.com") is None


class TestJsonFileRecordStore:
    """Tests specific to the local JSON file backend."""

    @pytest.mark.asyncio
    async def test_records_survive_reload(self, tmp_path):
        """Test that records are read back after reopening the file."""
        path = tmp_path / "finance.json"
        store = JsonFileRecordStore(path)
        user = await store.create_user("alice@gmail.com", "hash", "Alice")
        txn = await store.add_transaction(make_transaction("12.34", user_id=user.id))
        holding = await store.add_holding(make_holding("BTC", "0.1", "30000", user_id=user.id))

        reloaded = JsonFileRecordStore(path)
        assert await reloaded.find_user_by_email("alice@gmail.com") == user
        assert await reloaded.list_transactions(user.id) == [txn]
        assert await reloaded.list_holdings(user.id) == [holding]

    @pytest.mark.asyncio
    async def test_ids_keep_increasing_after_reload(self, tmp_path):
        """Test that IDs are not reused after reopening the file."""
        path = tmp_path / "finance.json"
        store = JsonFileRecordStore(path)
        user = await store.create_user("alice@gmail.com", "hash", "Alice")
        first = await store.add_transaction(make_transaction("1", user_id=user.id))

        reloaded = JsonFileRecordStore(path)
        second = await reloaded.add_transaction(make_transaction("2", user_id=user.id))
        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path):
        """Test that missing directories are created and no temp file is left."""
        path = tmp_path / "nested" / "dir" / "finance.json"
        store = JsonFileRecordStore(path)
        await store.create_user("alice@gmail.com", "hash", "Alice")
        assert path.exists()
        assert not path.with_name("finance.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        """Test the on-disk JSON layout."""
        path = tmp_path / "finance.json"
        store = JsonFileRecordStore(path)
        user = await store.create_user("alice@gmail.com", "hash", "Alice")
        await store.add_transaction(make_transaction("5.10", user_id=user.id))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert data["counters"] == {"users": 1, "transactions": 1, "holdings": 0}
        assert data["transactions"][0]["amount"] == "5.10"
        assert data["holdings"] == []

    def test_missing_file_is_empty_store(self, tmp_path):
        """Test that a missing file gives an empty store."""
        store = JsonFileRecordStore(tmp_path / "absent.json")
        assert store.path == tmp_path / "absent.json"

    def test_corrupt_file_raises_connection_error(self, tmp_path):
        """Test that unparsable JSON raises ConnectionError."""
        path = tmp_path / "finance.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConnectionError):
            JsonFileRecordStore(path)

    def test_invalid_rows_raise_connection_error(self, tmp_path):
        """Test that rows failing the record schema are rejected."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps({"users": [{"id": 1}]}), encoding="utf-8")
        with pytest.raises(ConnectionError):
            JsonFileRecordStore(path)

    @pytest.mark.parametrize("payload", [
        {"counters": []},
        {"counters": {"users": "x"}},
        {"counters": {"users": None}},
        {"users": "x"},
        ["not", "an", "object"],
    ])
    def test_malformed_structure_raises_storage_error(self, tmp_path, payload):
        """Test that a malformed file surfaces as a StorageError, never a raw error."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileRecordStore(path)

    @staticmethod
    def user_row(user_id, email):
        return {
            "id": user_id,
            "email": email,
            "password_hash": "hash",
            "name": "User",
            "created_at": "2024-01-01T00:00:00",
        }

    @staticmethod
    def transaction_row(txn_id, user_id):
        return {
            "id": txn_id,
            "user_id": user_id,
            "amount": "10",
            "type": "expense",
            "category": "Food",
            "description": "",
            "transaction_date": "2024-06-01",
        }

    def test_duplicate_ids_rejected(self, tmp_path):
        """Test that two rows sharing an ID are not silently merged."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps({
            "users": [self.user_row(1, "alice@gmail.com")],
            "transactions": [self.transaction_row(1, 1), self.transaction_row(1, 1)],
        }), encoding="utf-8")
        with pytest.raises(ConnectionError):
            JsonFileRecordStore(path)

    def test_duplicate_emails_rejected(self, tmp_path):
        """Test that a file with the same email twice (any case) is refused."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps({
            "users": [
                self.user_row(1, "alice@gmail.com"),
                self.user_row(2, "ALICE@gmail.com"),
            ],
        }), encoding="utf-8")
        with pytest.raises(ConnectionError):
            JsonFileRecordStore(path)

    def test_unknown_owner_rejected(self, tmp_path):
        """Test that records pointing at a user not in the file are refused."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps({
            "users": [self.user_row(1, "alice@gmail.com")],
            "transactions": [self.transaction_row(1, 7)],
        }), encoding="utf-8")
        with pytest.raises(ConnectionError):
            JsonFileRecordStore(path)

    @pytest.mark.asyncio
    async def test_consistent_hand_written_file_loads(self, tmp_path):
        """Test that a valid file without counters loads and resumes IDs."""
        path = tmp_path / "finance.json"
        path.write_text(json.dumps({
            "users": [self.user_row(3, "alice@gmail.com")],
            "transactions": [self.transaction_row(5, 3)],
        }), encoding="utf-8")

        store = JsonFileRecordStore(path)

        assert len(await store.list_transactions(3)) == 1
        new_user = await store.create_user("bob@gmail.com", "hash", "Bob")
        assert new_user.id == 4


class TestInMemoryAuditStorage:

    @pytest.mark.asyncio
    async def test_events_by_user_and_recency(self):
        """Test per-user and most-recent-first event queries."""
        storage = InMemoryAuditStorage()
        await storage.append_event(AuditEventBuilder.login_succeeded(user_id=1, email="a@gmail.com"))
        await storage.append_event(AuditEventBuilder.login_succeeded(user_id=2, email="b@gmail.com"))
        await storage.append_event(AuditEventBuilder.logout(user_id=1))

        user_events = await storage.get_events_for_user(1)
        assert len(user_events) == 2

        recent = await storage.get_recent_events(limit=2)
        assert [e.user_id for e in recent] == [1, 2]
        assert recent[0].description == "Logout"
