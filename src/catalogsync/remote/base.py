"""Remote Sync Client contract."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class RemoteSyncClient(Protocol):
    """
    Transport used by the sync engine.

    Payloads and returned entities are wire dicts (see catalogsync.remote.wire).
    Failures raise TransientError / PermanentError / AuthError subclasses.
    """

    async def create(
        self,
        collection: str,
        payload: dict[str, Any],
        *,
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]: ...

    async def update(
        self,
        collection: str,
        entity_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]: ...

    async def delete(self, collection: str, entity_id: str) -> None: ...

    async def list(self, collection: str) -> list[dict[str, Any]]: ...
