"""
Local Accounts

Username/password pairs kept in local storage. They exist only to pick the
namespace local collections are stored under.

CRITICAL: This is NOT authentication. simple_hash is a 32-bit rolling hash,
trivially reversible by brute force, and nothing is verified server side.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tracker.local.storage import LocalNamespace, LocalStorage


USERS_KEY = "tracker_users"
CURRENT_USER_KEY = "tracker_current_user"

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return sign + "".join(reversed(digits))


def simple_hash(text: str) -> str:
    """
    Signed 32-bit "hash * 31 + code unit" over UTF-16 code units, in base 36.

    Matches hashes already stored by earlier clients.
    """
    value = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = int.from_bytes(units[i:i + 2], "little")
        value = ((value << 5) - value + code) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(value)


class AccountError(Exception):
    """Registration or login was refused."""
    pass


class LocalUser(BaseModel):
    """A locally registered user."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    username: str
    password: str = Field(..., description="simple_hash of the password")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    display_name: Optional[str] = None


class LocalAccounts:
    """Register, log in and log out local users."""

    def __init__(self, storage: LocalStorage):
        # Account records live outside any user namespace
        self._store = LocalNamespace(storage)
        self._storage = storage

    def all_users(self) -> list[LocalUser]:
        users = []
        for raw in self._store.read(USERS_KEY, default=[]) or []:
            try:
                users.append(LocalUser.model_validate(raw))
            except ValueError:
                continue
        return users

    def _save_users(self, users: list[LocalUser]) -> None:
        self._store.write(
            USERS_KEY,
            [u.model_dump(mode="json", by_alias=True) for u in users],
        )

    def _find(self, username: str) -> Optional[LocalUser]:
        wanted = username.lower()
        for user in self.all_users():
            if user.username.lower() == wanted:
                return user
        return None

    @property
    def current_user(self) -> Optional[LocalUser]:
        """The logged-in user; a session pointing at a missing user is cleared."""
        username = self._storage.get_item(CURRENT_USER_KEY)
        if not username:
            return None
        user = self._find(username)
        if user is None:
            self._storage.remove_item(CURRENT_USER_KEY)
        return user

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def register(self, username: str, password: str) -> LocalUser:
        """Create a user and log them in."""
        username = (username or "").strip()
        if not username or not password:
            raise AccountError("Username and password are required")
        if len(username) < MIN_USERNAME_LENGTH:
            raise AccountError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters long"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AccountError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self._find(username) is not None:
            raise AccountError("Username already exists")

        user = LocalUser(
            username=username,
            password=simple_hash(password),
            display_name=username,
        )
        self._save_users([*self.all_users(), user])
        self._storage.set_item(CURRENT_USER_KEY, user.username)
        return user

    def login(self, username: str, password: str) -> LocalUser:
        user = self._find((username or "").strip())
        if user is None or user.password != simple_hash(password or ""):
            raise AccountError("Invalid username or password")
        self._storage.set_item(CURRENT_USER_KEY, user.username)
        return user

    def logout(self) -> None:
        self._storage.remove_item(CURRENT_USER_KEY)
