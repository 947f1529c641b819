"""
Serializers turning a session's deadline and values into bytes for the store.

JSONCodec is the default and round-trips JSON types (str, int, float, bool,
None, lists and dicts) and raises CodecError for any other value. PickleCodec
round-trips any picklable object but must only be used with a store that
untrusted parties cannot write to.
"""
import math
import pickle
from datetime import datetime
from typing import Any, Dict, Protocol, Tuple

from pydantic import BaseModel, ValidationError

from .errors import CodecError


class Codec(Protocol):
    def encode(self, deadline: datetime, values: Dict[str, Any]) -> bytes:
        ...

    def decode(self, data: bytes) -> Tuple[datetime, Dict[str, Any]]:
        ...


class SessionRecord(BaseModel):
    deadline: datetime
    values: Dict[str, Any] = {}


_JSON_SCALARS = (str, int, float, bool, type(None))


def _check_json_native(value: Any, path: str) -> None:
    """Raise CodecError for anything that would not decode back to an equal value."""
    if isinstance(value, float) and not math.isfinite(value):
        raise CodecError(f"Session value {path} is not a finite float")
    if isinstance(value, _JSON_SCALARS):
        return
    if type(value) is list:
        for index, item in enumerate(value):
            _check_json_native(item, f"{path}[{index}]")
        return
    if type(value) is dict:
        for key, item in value.items():
            if not isinstance(key, str):
                raise CodecError(f"Session value {path} has non-string key {key!r}")
            _check_json_native(item, f"{path}[{key!r}]")
        return
    raise CodecError(
        f"Session value {path} of type {type(value).__name__} is not JSON-native, use PickleCodec to store it"
    )


class JSONCodec:
    def encode(self, deadline: datetime, values: Dict[str, Any]) -> bytes:
        for key, value in values.items():
            _check_json_native(value, repr(key))
        try:
            return SessionRecord(deadline=deadline, values=values).model_dump_json().encode("utf-8")
        # PydanticSerializationError is a ValueError subclass
        except (ValueError, TypeError) as e:
            raise CodecError(f"Failed to encode session data: {e}") from e

    def decode(self, data: bytes) -> Tuple[datetime, Dict[str, Any]]:
        try:
            record = SessionRecord.model_validate_json(data)
        except ValidationError as e:
            raise CodecError(f"Failed to decode session data: {e.error_count()} validation error(s)") from e
        return record.deadline, record.values


class PickleCodec:
    def encode(self, deadline: datetime, values: Dict[str, Any]) -> bytes:
        try:
            return pickle.dumps((deadline, values), protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise CodecError(f"Failed to encode session data: {e}") from e

    def decode(self, data: bytes) -> Tuple[datetime, Dict[str, Any]]:
        try:
            deadline, values = pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, TypeError, ValueError, AttributeError, ImportError) as e:
            raise CodecError(f"Failed to decode session data: {e}") from e
        if not isinstance(deadline, datetime) or not isinstance(values, dict):
            raise CodecError("Decoded session data has an unexpected shape")
        return deadline, values


CODECS = {
    "json": JSONCodec,
    "pickle": PickleCodec,
}


def get_codec(name: str) -> Codec:
    try:
        return CODECS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown session codec '{name}', must be one of {sorted(CODECS)}")
