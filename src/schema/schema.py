from typing import Any

from pydantic import BaseModel, Field


class SessionValue(BaseModel):
    """Value to store in the session under a key."""

    value: Any = Field(
        description="Any JSON value.",
        examples=["dark", 42, {"items": [1, 2, 3]}],
    )


class SessionValueResponse(BaseModel):
    key: str = Field(description="Session key.", examples=["theme"])
    value: Any = Field(description="Value stored under the key.", examples=["dark"])


class SessionInfoResponse(BaseModel):
    """Summary of the current session."""

    keys: list[str] = Field(description="Keys present in the session.", examples=[["theme", "cart"]])
    status: str = Field(description="Status of the session so far in this request.", examples=["unmodified"])
    is_new: bool = Field(description="Whether the session has not been committed yet.")


class RememberMeRequest(BaseModel):
    remember: bool = Field(description="Keep the session cookie after the browser closes.")
