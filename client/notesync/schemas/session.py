"""
NoteSync - Session Schemas
===========================

What:  Identity and credential models plus the result type AuthSession returns.
Who:   AuthSession (parsing /auth responses, persisting), UI (AuthResult).
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class User(BaseModel):
    """
    Identity of the logged-in user as reported by the server.

    Unknown fields are kept so the persisted record round-trips unchanged.
    """

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    username: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @property
    def display_name(self) -> str:
        return self.username or "User"


class Credential(BaseModel):
    """Bearer token + identity. Owned by AuthSession only."""

    token: str
    user: User

    model_config = ConfigDict(frozen=True)

    @field_validator("token")
    @classmethod
    def require_token(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("token must not be empty")
        return v


class AuthResult(BaseModel):
    """
    Outcome of login/register.

    AuthSession never raises past its boundary for request failures; callers
    branch on `success` and show `error` as is.
    """

    success: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success
