"""Initiating-actor lookup for export and restore.

Authentication lives outside the engine; callers hand in an
``ActorProvider`` that answers "who is asking?".

Usage:
    from resto_snapshot.snapshot.identity import StaticActorProvider, resolve_actor

    actor = await resolve_actor(StaticActorProvider("admin"))
    actor.username   # 'admin'
"""

from dataclasses import dataclass
from typing import Protocol

from resto_snapshot.adapters.base import DatabaseClient
from resto_snapshot.snapshot.errors import IdentityError


@dataclass(frozen=True)
class Actor:
    """The user initiating an export or restore."""

    username: str
    user_id: int | None = None


class ActorProvider(Protocol):
    async def current_actor(self) -> Actor | None:
        """Return the current actor, or ``None`` if nobody is identified."""
        ...


class StaticActorProvider:
    """Provider returning a fixed actor (CLI, embedding callers, tests)."""

    def __init__(self, username: str | None, user_id: int | None = None) -> None:
        self._actor = Actor(username, user_id) if username else None

    async def current_actor(self) -> Actor | None:
        return self._actor


class DatabaseActorProvider:
    """Provider resolving a username against the ``app_user`` table.

    Args:
        adapter: Database client to look the user up with.
        username: Username to resolve; ``None`` means no actor.

    Raises:
        IdentityError: From ``current_actor()`` if the username is unknown.
    """

    def __init__(self, adapter: DatabaseClient, username: str | None) -> None:
        self._adapter = adapter
        self._username = username

    async def current_actor(self) -> Actor | None:
        if not self._username:
            return None
        async with self._adapter.transaction(read_only=True) as tx:
            rows = await tx.select("app_user", "id, username", filters={"username": self._username})
        if not rows:
            raise IdentityError(f"Unknown user: {self._username}")
        return Actor(username=rows[0]["username"], user_id=rows[0]["id"])


async def resolve_actor(provider: ActorProvider | None) -> Actor:
    """Return the current actor or raise ``IdentityError``."""
    actor = await provider.current_actor() if provider is not None else None
    if actor is None:
        raise IdentityError("No authenticated user: an actor is required")
    return actor
