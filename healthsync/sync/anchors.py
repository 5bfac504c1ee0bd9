"""Producer-side anchor persistence.

The orchestrator reads and writes anchors through the ``AnchorStore``
protocol.  ``RemoteAnchorStore`` keeps them on the server so that every
producer for the same owner shares one cursor per data type.
"""

from __future__ import annotations

import uuid
from typing import Protocol

from healthsync.sync.client import IngestionClient


class AnchorStore(Protocol):
    async def get(self, data_type: str) -> str | None: ...

    async def put(self, data_type: str, payload: str) -> None: ...


class RemoteAnchorStore:
    """AnchorStore backed by the server's /sync/anchors endpoints."""

    def __init__(self, client: IngestionClient, owner: uuid.UUID) -> None:
        self._client = client
        self._owner = owner

    async def get(self, data_type: str) -> str | None:
        return await self._client.get_anchor(self._owner, data_type)

    async def put(self, data_type: str, payload: str) -> None:
        await self._client.put_anchor(self._owner, data_type, payload)


class MemoryAnchorStore:
    """In-process AnchorStore, used for dry runs and tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.anchors: dict[str, str] = dict(initial or {})

    async def get(self, data_type: str) -> str | None:
        return self.anchors.get(data_type)

    async def put(self, data_type: str, payload: str) -> None:
        self.anchors[data_type] = payload
