from . import misc, session

__all__ = ["misc", "session"]
