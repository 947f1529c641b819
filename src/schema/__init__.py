from .schema import RememberMeRequest, SessionInfoResponse, SessionValue, SessionValueResponse

__all__ = [
    "RememberMeRequest",
    "SessionInfoResponse",
    "SessionValue",
    "SessionValueResponse",
]
