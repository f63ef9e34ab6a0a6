"""Tests for local storage, local accounts and identity resolution."""

import json

import pytest

from tracker.config import IdentitySettings
from tracker.local import (
    AccountError,
    LocalAccounts,
    LocalNamespace,
    LocalStorage,
    simple_hash,
    storage_key,
)
from tracker.local.accounts import CURRENT_USER_KEY, USERS_KEY
from tracker.services.identity import (
    USER_ID_STORAGE_KEY,
    MissingIdentityError,
    get_user_id,
    resolve_user_key,
)


class TestLocalStorage:
    """Tests for the key/value store and its namespacing."""

    def test_storage_key(self):
        """Test keys are namespaced per user, bare without one."""
        assert storage_key("tasks", "alice") == "tracker_alice_tasks"
        assert storage_key("tasks", None) == "tasks"
        assert storage_key("tasks", "alice", prefix="app") == "app_alice_tasks"

    def test_values_persist_to_file(self, tmp_path):
        """Test a new instance sees what the previous one wrote."""
        path = tmp_path / "local.json"
        LocalStorage(path).set_item("greeting", "hello")
        assert LocalStorage(path).get_item("greeting") == "hello"

    def test_unreadable_file_starts_empty(self, tmp_path):
        """Test a corrupt backing file is logged and ignored."""
        path = tmp_path / "local.json"
        path.write_text("{not json", encoding="utf-8")
        assert LocalStorage(path).keys() == []

    def test_namespaces_do_not_collide(self):
        """Test two users' collections live under different keys."""
        storage = LocalStorage()
        LocalNamespace(storage, "alice").write("tasks", [{"id": "a"}])
        LocalNamespace(storage, "bob").write("tasks", [{"id": "b"}])

        assert LocalNamespace(storage, "alice").read("tasks") == [{"id": "a"}]
        assert LocalNamespace(storage, "bob").read("tasks") == [{"id": "b"}]
        assert json.loads(storage.get_item("tracker_alice_tasks")) == [{"id": "a"}]

    def test_corrupt_value_reads_as_default(self):
        """Test unparseable stored JSON yields the default."""
        storage = LocalStorage()
        storage.set_item("tracker_alice_tasks", "[oops")
        assert LocalNamespace(storage, "alice").read("tasks", default=[]) == []

    def test_failed_write_keeps_data_in_memory(self, tmp_path):
        """Test a write that cannot reach disk is reported but not lost."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = LocalStorage(blocker / "local.json")
        namespace = LocalNamespace(storage, "alice")

        assert namespace.write("tasks", [{"id": "a"}]) is False
        assert namespace.read("tasks") == [{"id": "a"}]


class TestSimpleHash:
    """Tests for the local password hash."""

    def test_known_values(self):
        """Test hashes match the 32-bit rolling hash in base 36."""
        assert simple_hash("") == "0"
        assert simple_hash("a") == "2p"
        assert simple_hash("abc") == "22ci"
        assert simple_hash("é") == "6h"

    def test_overflow_wraps_to_negative(self):
        """Test the hash wraps like a signed 32-bit integer."""
        assert simple_hash("Hello World") == "-e9jc70"


class TestLocalAccounts:
    """Tests for local registration and login."""

    def test_register_logs_in(self):
        """Test registration stores a hashed password and starts a session."""
        storage = LocalStorage()
        accounts = LocalAccounts(storage)
        user = accounts.register("alice", "secret")

        assert user.password == simple_hash("secret")
        assert accounts.current_user.username == "alice"
        assert accounts.is_authenticated
        assert storage.get_item(CURRENT_USER_KEY) == "alice"
        assert "secret" not in storage.get_item(USERS_KEY)

    @pytest.mark.parametrize("username,password,message", [
        ("", "secret", "required"),
        ("al", "secret", "at least 3"),
        ("alice", "abc", "at least 4"),
    ])
    def test_register_rules(self, username, password, message):
        """Test username and password minimums."""
        with pytest.raises(AccountError, match=message):
            LocalAccounts(LocalStorage()).register(username, password)

    def test_usernames_are_case_insensitive(self):
        """Test ALICE cannot register next to alice."""
        accounts = LocalAccounts(LocalStorage())
        accounts.register("alice", "secret")
        with pytest.raises(AccountError, match="already exists"):
            accounts.register("ALICE", "other-secret")

    def test_login_and_logout(self):
        """Test login checks the hash and logout ends the session."""
        accounts = LocalAccounts(LocalStorage())
        accounts.register("alice", "secret")
        accounts.logout()
        assert accounts.current_user is None

        with pytest.raises(AccountError):
            accounts.login("alice", "wrong")
        assert accounts.login("Alice", "secret").username == "alice"
        assert accounts.is_authenticated

    def test_stale_session_is_cleared(self):
        """Test a session naming an unknown user is dropped."""
        storage = LocalStorage()
        storage.set_item(CURRENT_USER_KEY, "ghost")
        assert LocalAccounts(storage).current_user is None
        assert storage.get_item(CURRENT_USER_KEY) is None


class TestIdentity:
    """Tests for user scope resolution."""

    def test_header_value_is_the_scope(self):
        """Test the header value is used as-is."""
        assert resolve_user_key({"x-user-id": "user_1"}, IdentitySettings()) == "user_1"

    def test_missing_header_rejected_by_default(self):
        """Test absent and blank headers are refused when identity is required."""
        settings = IdentitySettings(require_user_id=True)
        with pytest.raises(MissingIdentityError):
            resolve_user_key({}, settings)
        with pytest.raises(MissingIdentityError):
            resolve_user_key({"x-user-id": "   "}, settings)

    def test_missing_header_falls_back_when_allowed(self):
        """Test the shared scope is used only when explicitly enabled."""
        settings = IdentitySettings(require_user_id=False, default_user_id="shared")
        assert resolve_user_key({}, settings) == "shared"

    def test_client_id_is_durable(self):
        """Test the generated id is created once and reused."""
        storage = LocalStorage()
        first = get_user_id(storage)
        assert first.startswith("user_")
        assert get_user_id(storage) == first
        assert storage.get_item(USER_ID_STORAGE_KEY) == first
