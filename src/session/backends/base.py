from abc import ABC, abstractmethod
from datetime import datetime
from typing import NamedTuple, Optional


class StoreRecord(NamedTuple):
    data: bytes
    expiry: Optional[datetime]


class SessionStore(ABC):
    """
    Persistence for encoded session data, keyed by token.

    Implementations are shared by every in-flight request and must tolerate
    concurrent calls. Expired records must never be returned by find().
    """

    @abstractmethod
    async def find(self, token: str) -> Optional[StoreRecord]:
        """Return the record for token, or None if it is missing or expired."""

    @abstractmethod
    async def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        """Insert or replace the record for token."""

    @abstractmethod
    async def delete(self, token: str) -> None:
        """Remove the record for token. Unknown tokens are not an error."""


def mask_token(token: str) -> str:
    """Shorten a token for log output."""
    return f"{token[:6]}..." if len(token) > 6 else "***"
