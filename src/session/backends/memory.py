import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .base import SessionStore, StoreRecord, mask_token

logger = logging.getLogger('satchel.session.backends.memory')


class MemoryStore(SessionStore):
    """
    In-process store for development and tests.

    Expiry is enforced lazily: an expired record is dropped when it is looked
    up, or in bulk by purge_expired().
    """

    def __init__(self):
        self._records: Dict[str, Tuple[bytes, datetime]] = {}

    async def find(self, token: str) -> Optional[StoreRecord]:
        record = self._records.get(token)
        if record is None:
            return None

        data, expiry = record
        if expiry <= datetime.now(timezone.utc):
            logger.debug(f"Session {mask_token(token)} expired, dropping it")
            self._records.pop(token, None)
            return None
        return StoreRecord(data, expiry)

    async def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        self._records[token] = (data, expiry)

    async def delete(self, token: str) -> None:
        self._records.pop(token, None)

    def purge_expired(self) -> int:
        now = datetime.now(timezone.utc)
        expired = [token for token, (_, expiry) in self._records.items() if expiry <= now]
        for token in expired:
            del self._records[token]
        if expired:
            logger.info(f"Purged {len(expired)} expired sessions")
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)
