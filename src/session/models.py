import logging
from collections.abc import MutableMapping
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger('satchel.session.models')

_MISSING = object()


class Status(Enum):
    """State of a session at the end of a request."""

    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    DESTROYED = "destroyed"


class SessionData(MutableMapping):
    """
    Per-request session payload.

    Behaves like a dict of string keys to arbitrary values and records whether
    it has been written to. A session is bound to exactly one in-flight request
    and is discarded unless the session manager commits it.

    Status only moves forward: UNMODIFIED -> MODIFIED, and anything -> DESTROYED.
    Once destroyed, writes are ignored for the rest of the request.
    """

    def __init__(
        self,
        token: str = "",
        values: Optional[Dict[str, Any]] = None,
        deadline: Optional[datetime] = None,
    ):
        self.token = token
        self.deadline = deadline
        self._values: Dict[str, Any] = dict(values or {})
        self._status = Status.UNMODIFIED
        self.committed = False

    @property
    def status(self) -> Status:
        return self._status

    @property
    def is_new(self) -> bool:
        return not self.token

    def mark_modified(self) -> None:
        if self._status is Status.DESTROYED:
            return
        self._status = Status.MODIFIED

    def mark_destroyed(self) -> None:
        self._values.clear()
        self.token = ""
        self.deadline = None
        self._status = Status.DESTROYED

    def values_snapshot(self) -> Dict[str, Any]:
        return dict(self._values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if self._status is Status.DESTROYED:
            logger.debug(f"Ignoring write to destroyed session: {key}")
            return
        self._values[key] = value
        self.mark_modified()

    def __delitem__(self, key: str) -> None:
        del self._values[key]
        self.mark_modified()

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"SessionData(status={self._status.value}, keys={sorted(self._values)})"

    def clear(self) -> None:
        # An already-empty session is not considered modified
        if not self._values:
            return
        self._values.clear()
        self.mark_modified()

    def remove(self, key: str) -> None:
        """Delete key if present. Removing a missing key leaves the status untouched."""
        if key in self._values:
            del self[key]

    def exists(self, key: str) -> bool:
        return key in self._values

    def _typed(self, key: str, kind: type, default: Any) -> Any:
        value = self._values.get(key, _MISSING)
        # bool is a subclass of int, so it must not satisfy an int lookup
        if value is _MISSING or not isinstance(value, kind) or (kind is not bool and isinstance(value, bool)):
            return default
        return value

    def get_str(self, key: str) -> str:
        return self._typed(key, str, "")

    def get_int(self, key: str) -> int:
        return self._typed(key, int, 0)

    def get_float(self, key: str) -> float:
        return self._typed(key, float, 0.0)

    def get_bool(self, key: str) -> bool:
        return self._typed(key, bool, False)

    def pop_str(self, key: str) -> str:
        value = self.get_str(key)
        self.remove(key)
        return value

    def pop_int(self, key: str) -> int:
        value = self.get_int(key)
        self.remove(key)
        return value

    def pop_float(self, key: str) -> float:
        value = self.get_float(key)
        self.remove(key)
        return value

    def pop_bool(self, key: str) -> bool:
        value = self.get_bool(key)
        self.remove(key)
        return value
