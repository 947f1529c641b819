class SessionError(Exception):
    """Base class for errors raised while loading or saving a session."""


class CodecError(SessionError):
    """Session data could not be encoded or decoded."""


class StoreError(SessionError):
    """The session store failed to read, write or delete a record."""


class NotSupportedError(SessionError):
    """The underlying response sink does not offer the requested capability."""
