"""Reads and writes the session list under one store key."""

from __future__ import annotations

import logging
from typing import List, Optional

import orjson

from ..storage.base import KeyValueStore
from .models import SessionRecord
from .payload_codec import PayloadCodec, PayloadCodecError, PlainCodec

logger = logging.getLogger(__name__)

_UNREADABLE_PAYLOAD_ERRORS = (PayloadCodecError, orjson.JSONDecodeError, KeyError, TypeError, ValueError)


class SessionRepository:
    """Serialises the whole session list as one codec-wrapped JSON document.

    ``is_writing`` is true while a write is in flight so change listeners on
    synchronous stores can tell their own writes from foreign ones.
    """

    def __init__(self, store: KeyValueStore, storage_key: str, codec: Optional[PayloadCodec] = None) -> None:
        self.store = store
        self.storage_key = storage_key
        self.codec: PayloadCodec = codec if codec is not None else PlainCodec()
        self.is_writing = False

    async def load(self) -> List[SessionRecord]:
        """Return every stored record; an unreadable payload reads as no sessions."""
        raw = await self.store.get(self.storage_key)
        if not raw:
            return []
        try:
            items = orjson.loads(self.codec.decode(raw))
            if not isinstance(items, list):
                raise TypeError(f"expected a list of sessions, got {type(items).__name__}")
            return [SessionRecord.from_dict(item) for item in items]
        except _UNREADABLE_PAYLOAD_ERRORS as exc:
            logger.warning("Discarding unreadable session payload under %s: %s", self.storage_key, exc)
            return []

    async def save(self, records: List[SessionRecord]) -> None:
        payload = orjson.dumps([record.to_dict() for record in records]).decode("utf-8")
        self.is_writing = True
        try:
            await self.store.set(self.storage_key, self.codec.encode(payload))
        finally:
            self.is_writing = False

    async def find(self, session_id: str) -> Optional[SessionRecord]:
        for record in await self.load():
            if record.session_id == session_id:
                return record
        return None

    async def upsert(self, record: SessionRecord) -> None:
        records = await self.load()
        for index, existing in enumerate(records):
            if existing.session_id == record.session_id:
                records[index] = record
                break
        else:
            records.append(record)
        await self.save(records)

    async def clear(self) -> None:
        self.is_writing = True
        try:
            await self.store.remove(self.storage_key)
        finally:
            self.is_writing = False
