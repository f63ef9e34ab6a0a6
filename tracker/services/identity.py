"""
Identity Resolution

The user scope is ADVISORY. Nothing here authenticates anyone; it only
decides which partition of the store a request reads and writes.

Server side: the scope comes from a request header. Without it the request
is rejected, unless the shared fallback scope is explicitly enabled.

Client side: a durable generated id is kept in local storage and sent with
every request.
"""

from typing import Mapping, Optional
from uuid import uuid4

from tracker.config import IdentitySettings, get_settings


USER_ID_STORAGE_KEY = "tracker_user_id"


class MissingIdentityError(Exception):
    """Request carried no user scope and the shared fallback is disabled."""
    pass


def resolve_user_key(
    headers: Mapping[str, str],
    settings: Optional[IdentitySettings] = None,
) -> str:
    """
    Derive the user scope key from request headers.

    Header lookup is case-insensitive when given Starlette headers.
    Blank values count as absent.
    """
    settings = settings or get_settings().identity
    value = (headers.get(settings.header_name) or "").strip()
    if value:
        return value
    if settings.require_user_id:
        raise MissingIdentityError(
            f"Missing {settings.header_name} header"
        )
    return settings.default_user_id


def get_user_id(storage) -> str:
    """
    Get this installation's durable user id, creating it on first use.

    Args:
        storage: Any object with get_item/set_item (see LocalStorage)
    """
    user_id = storage.get_item(USER_ID_STORAGE_KEY)
    if not user_id:
        user_id = f"user_{uuid4()}"
        storage.set_item(USER_ID_STORAGE_KEY, user_id)
    return user_id
