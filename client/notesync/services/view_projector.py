"""
NoteSync - View Projector
==========================

What:  Derives the list the UI renders from a store's collection and the
       current ViewCriteria.
How:   Pure functions over immutable inputs. No state, no I/O, so it is safe
       to call on every render.

       collection ──▶ search ──▶ tag filter ──▶ favorites ──▶ sort ──▶ view
                      (all filters ANDed)                   (notes only)

Sort keys (notes):
    updated   updatedAt, else createdAt, else the id's timestamp
    created   createdAt, else the id's timestamp
    title     case-insensitive
    favorite  favorites rank above non-favorites when descending

The id fallback reads the creation time embedded in a 24-hex-digit server id;
any other id sorts as the oldest possible timestamp.
"""

import functools
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from notesync.schemas.resource import Bookmark, Note, Resource
from notesync.schemas.view import ViewCriteria

R = TypeVar("R", bound=Resource)

_EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def _id_timestamp(resource_id: str) -> datetime:
    if len(resource_id) == 24:
        try:
            seconds = int(resource_id[:8], 16)
        except ValueError:
            return _EPOCH_FLOOR
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return _EPOCH_FLOOR


def _updated_key(resource: Resource) -> datetime:
    return resource.updated_at or resource.created_at or _id_timestamp(resource.id)


def _created_key(resource: Resource) -> datetime:
    return resource.created_at or _id_timestamp(resource.id)


def _title_key(resource: Resource) -> str:
    return (resource.title or "").lower()


def _favorite_key(resource: Resource) -> int:
    return 1 if resource.is_favorite else 0


_SORT_KEYS = {
    "updated": _updated_key,
    "created": _created_key,
    "title": _title_key,
    "favorite": _favorite_key,
}


def _compare(a: Any, b: Any) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


class ViewProjector:
    """Filter and sort helpers for the notes and bookmarks views."""

    # ── Filtering ─────────────────────────────────────────────────────────

    @staticmethod
    def matches_search(resource: Resource, term: str) -> bool:
        if not term:
            return True
        return any(term in field.lower() for field in resource.search_fields())

    @staticmethod
    def matches_tags(resource: Resource, terms: Sequence[str]) -> bool:
        """Any tag containing any term (substring, case-insensitive)."""
        if not terms:
            return True
        return any(term in tag.lower() for tag in resource.tags for term in terms)

    def filter_resources(self, items: Iterable[R], criteria: ViewCriteria) -> List[R]:
        """Apply search, tag and favorites filters. Keeps the input order."""
        term = criteria.search_term
        tag_terms = criteria.tag_terms
        return [
            item
            for item in items
            if self.matches_search(item, term)
            and self.matches_tags(item, tag_terms)
            and (item.is_favorite or not criteria.favorites_only)
        ]

    # ── Sorting ───────────────────────────────────────────────────────────

    def sort_notes(
        self,
        notes: Iterable[Note],
        sort_by: str = "updated",
        sort_order: str = "desc",
    ) -> List[Note]:
        """
        Sort notes by one key.

        Equal keys compare as 0, so their relative order is kept; nothing
        else about ties is promised.

        Raises:
            ValueError: Unknown sort key.
        """
        key: Optional[Callable[[Resource], Any]] = _SORT_KEYS.get(sort_by)
        if key is None:
            raise ValueError(f"Invalid sort_by '{sort_by}'. Must be one of: {tuple(_SORT_KEYS)}")
        sign = 1 if sort_order == "asc" else -1

        def comparator(a: Note, b: Note) -> int:
            return sign * _compare(key(a), key(b))

        return sorted(notes, key=functools.cmp_to_key(comparator))

    # ── Views ─────────────────────────────────────────────────────────────

    def project_notes(
        self, notes: Iterable[Note], criteria: Optional[ViewCriteria] = None
    ) -> List[Note]:
        criteria = criteria or ViewCriteria()
        filtered = self.filter_resources(notes, criteria)
        return self.sort_notes(filtered, criteria.sort_by, criteria.sort_order)

    def project_bookmarks(
        self, bookmarks: Iterable[Bookmark], criteria: Optional[ViewCriteria] = None
    ) -> List[Bookmark]:
        """Bookmarks are filtered only; they keep the server's order."""
        return self.filter_resources(bookmarks, criteria or ViewCriteria())

    @staticmethod
    def favorite_count(items: Iterable[Resource]) -> int:
        return sum(1 for item in items if item.is_favorite)


# Singleton instance
view_projector = ViewProjector()
