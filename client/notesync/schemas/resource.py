"""
NoteSync - Resource Schemas
============================

What:  Pydantic models for the two resource types and their write payloads.
How:   `Note` / `Bookmark` parse what the server returns (read side);
       `NoteFields` / `BookmarkFields` hold user-editable fields, perform all
       client-side validation and serialize the camelCase JSON body the API
       expects (write side). `build_fields()` turns raw form input into a
       payload model or raises our ValidationError.
Who:   ResourceStore (parsing responses, building request bodies),
       ViewProjector (search fields), UI forms (from_resource for editing).

Read models are frozen: a collection handed to the UI cannot be edited in
place, the store replaces it wholesale.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import (
    AliasChoices,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError as PydanticValidationError,
    field_validator,
)

from notesync.exceptions import ValidationError


def normalize_tags(value: Union[str, Iterable[Any], None]) -> List[str]:
    """
    Normalize tag input into a clean list.

    Accepts the comma-separated form-field string or any iterable of tags.
    Tags are trimmed, empties dropped, duplicates removed (first occurrence
    wins), case preserved.

    >>> normalize_tags(" work, ideas,, work ,Todo ")
    ['work', 'ideas', 'Todo']
    """
    if value is None:
        return []
    parts = value.split(",") if isinstance(value, str) else list(value)
    cleaned = (str(part).strip() for part in parts if part is not None)
    return list(dict.fromkeys(tag for tag in cleaned if tag))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken as UTC so they stay comparable when sorting
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ══════════════════════════════════════════════════════════════════════════
# Read Models: what the server returns
# ══════════════════════════════════════════════════════════════════════════


class Resource(BaseModel):
    """
    Fields shared by notes and bookmarks.

    The server's identifier arrives as `_id`; `id` is accepted too. Timestamps
    are server-stamped and only used for display and sort.
    """

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_favorite: bool = Field(
        default=False, validation_alias=AliasChoices("isFavorite", "is_favorite")
    )
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    updated_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> List[str]:
        return normalize_tags(v)

    @field_validator("is_favorite", mode="before")
    @classmethod
    def coerce_favorite(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def search_fields(self) -> Tuple[str, ...]:
        """Text fields the free-text search looks into."""
        return (self.title or "",)


class Note(Resource):
    """A free-text note. `content` is the required field."""

    content: str = ""

    def search_fields(self) -> Tuple[str, ...]:
        return (self.title or "", self.content or "")


class Bookmark(Resource):
    """A saved link. `url` is the required field."""

    url: str = ""
    description: Optional[str] = None

    def search_fields(self) -> Tuple[str, ...]:
        return (self.title or "", self.url or "", self.description or "")


# ══════════════════════════════════════════════════════════════════════════
# Write Models: what the client sends
# ══════════════════════════════════════════════════════════════════════════

_URL_ADAPTER = TypeAdapter(AnyUrl)

R = TypeVar("R", bound=Resource)
F = TypeVar("F", bound="ResourceFields")


class ResourceFields(BaseModel):
    """
    User-editable fields common to both resource types.

    Text is trimmed, tags normalized. `to_payload()` produces the request
    body with the API's camelCase names.
    """

    title: str = ""
    tags: List[str] = Field(default_factory=list)
    is_favorite: bool = Field(default=False, alias="isFavorite")

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> List[str]:
        return normalize_tags(v)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for POST/PUT."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_resource(cls: Type[F], resource: Resource, **overrides: Any) -> F:
        """
        Payload pre-filled from an existing resource.

        Used to populate an edit form and to re-send a resource's full fields
        with one value changed (bookmark favorite toggle).
        """
        data = {name: getattr(resource, name, None) for name in cls.model_fields}
        data.update(overrides)
        return build_fields(cls, data)


class NoteFields(ResourceFields):
    """Write payload for a note: title, content, tags, isFavorite."""

    content: str = Field(default="", validate_default=True)

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("content")
    @classmethod
    def require_content(cls, v: str) -> str:
        if not v:
            raise ValueError("Content is required")
        return v


class BookmarkFields(ResourceFields):
    """Write payload for a bookmark: title, url, description, tags, isFavorite."""

    url: str = Field(default="", validate_default=True)
    description: str = ""

    @field_validator("url", "description", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("url")
    @classmethod
    def require_valid_url(cls, v: str) -> str:
        if not v:
            raise ValueError("URL is required")
        try:
            _URL_ADAPTER.validate_python(v)
        except PydanticValidationError:
            raise ValueError("Please enter a valid URL") from None
        # The URL is sent exactly as typed; AnyUrl would normalize it
        return v


def build_fields(fields_model: Type[F], raw: Union[F, Mapping[str, Any]]) -> F:
    """
    Validate raw form input into a payload model.

    Args:
        fields_model: NoteFields or BookmarkFields
        raw:          A mapping of form values, or an already-built payload

    Returns:
        The validated payload model.

    Raises:
        ValidationError: First failing field, with a user-facing message
            ("Content is required", "Please enter a valid URL", ...).
    """
    if isinstance(raw, fields_model):
        return raw
    try:
        return fields_model.model_validate(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        cause = (first.get("ctx") or {}).get("error")
        message = str(cause) if cause else first.get("msg", "Validation failed")
        raise ValidationError(
            message=message,
            field=field,
            context={"error_count": exc.error_count()},
        ) from exc
