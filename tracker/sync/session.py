"""
Tracker Session

Bundles the four sync collections for one user. A session is built against
either the REST API or the local fallback namespace; everything above it
behaves the same in both modes.

The device-only journals (mood, goals, workouts, study, wellness) ride along
whenever the session has local storage, in both modes.
"""

import asyncio
from typing import Optional

import httpx

from tracker.audit import AuditLogger
from tracker.config import ClientSettings, get_settings
from tracker.local.journals import Journals
from tracker.local.storage import LocalNamespace, LocalStorage
from tracker.models.resources import ResourceKind
from tracker.services.identity import get_user_id
from tracker.services.storage import ResourceStore
from tracker.sync.collection import (
    COLLECTION_BY_KIND,
    FinanceCollection,
    HabitCollection,
    PlannerCollection,
    SyncCollection,
    TaskCollection,
)
from tracker.sync.remote import (
    HttpRemoteCollection,
    LocalRemoteCollection,
    RemoteCollection,
    StoreRemoteCollection,
)


class TrackerSession:
    """All collections of one user, wired to one kind of remote."""

    def __init__(
        self,
        remotes: dict[ResourceKind, RemoteCollection],
        user_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        audit_logger: Optional[AuditLogger] = None,
        journals: Optional[Journals] = None,
    ):
        self.user_key = user_key
        self._http_client = http_client
        self.journals = journals
        audit_logger = audit_logger or AuditLogger()
        self.collections: dict[ResourceKind, SyncCollection] = {
            kind: COLLECTION_BY_KIND[kind](remotes[kind], user_key, audit_logger)
            for kind in ResourceKind
        }

    @property
    def tasks(self) -> TaskCollection:
        return self.collections[ResourceKind.TASKS]

    @property
    def habits(self) -> HabitCollection:
        return self.collections[ResourceKind.HABITS]

    @property
    def finance(self) -> FinanceCollection:
        return self.collections[ResourceKind.FINANCE]

    @property
    def planner(self) -> PlannerCollection:
        return self.collections[ResourceKind.PLANNER]

    @classmethod
    def remote(
        cls,
        base_url: str,
        storage: LocalStorage,
        http_client: Optional[httpx.AsyncClient] = None,
        header_name: str = "x-user-id",
        audit_logger: Optional[AuditLogger] = None,
        username: Optional[str] = None,
        prefix: str = "tracker",
    ) -> "TrackerSession":
        """
        Session against the REST API.

        The user id is this installation's durable id from local storage.
        A supplied http_client is used as-is and must already point at
        base_url; it is not closed by aclose(). Journals are kept under
        the local username.
        """
        audit_logger = audit_logger or AuditLogger()
        namespace = LocalNamespace(storage, username, prefix, audit_logger)
        user_key = get_user_id(storage)
        owned = http_client is None
        client = http_client or httpx.AsyncClient(base_url=base_url.rstrip("/"))
        remotes = {
            kind: HttpRemoteCollection(client, kind, user_key, header_name)
            for kind in ResourceKind
        }
        return cls(
            remotes,
            user_key,
            http_client=client if owned else None,
            audit_logger=audit_logger,
            journals=Journals(namespace, audit_logger),
        )

    @classmethod
    def local(
        cls,
        storage: LocalStorage,
        username: Optional[str] = None,
        prefix: str = "tracker",
        audit_logger: Optional[AuditLogger] = None,
    ) -> "TrackerSession":
        """Degraded mode: collections persisted in local storage under the username."""
        audit_logger = audit_logger or AuditLogger()
        namespace = LocalNamespace(storage, username, prefix, audit_logger)
        remotes = {
            kind: LocalRemoteCollection(
                namespace,
                kind,
                prepend=COLLECTION_BY_KIND[kind].prepend,
                audit_logger=audit_logger,
            )
            for kind in ResourceKind
        }
        return cls(
            remotes,
            username or "local",
            audit_logger=audit_logger,
            journals=Journals(namespace, audit_logger),
        )

    @classmethod
    def in_process(
        cls,
        store: ResourceStore,
        user_key: str,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "TrackerSession":
        """Session bound directly to a ResourceStore, without HTTP."""
        remotes = {
            kind: StoreRemoteCollection(store, kind, user_key)
            for kind in ResourceKind
        }
        return cls(remotes, user_key, audit_logger=audit_logger)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        username: Optional[str] = None,
    ) -> "TrackerSession":
        """Pick remote or local mode from CLIENT_* settings."""
        settings = settings or get_settings().client
        storage = LocalStorage(settings.local_storage_path)
        if settings.api_base_url:
            header_name = get_settings().identity.header_name
            return cls.remote(
                settings.api_base_url,
                storage,
                header_name=header_name,
                username=username,
                prefix=settings.storage_prefix,
            )
        return cls.local(storage, username, settings.storage_prefix)

    async def load(self) -> None:
        """Load every collection concurrently. Failures land on each collection's error."""
        if self.journals is not None:
            self.journals.load()
        await asyncio.gather(*(c.load() for c in self.collections.values()))

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
