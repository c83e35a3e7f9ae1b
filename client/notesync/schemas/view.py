"""
NoteSync - View Criteria
=========================

What:  Transient UI filter/sort state handed to the ViewProjector.
How:   Validated like query parameters: unknown sort keys or directions are
       rejected when the criteria object is built, not while sorting.
"""

from typing import List

from pydantic import BaseModel, Field, field_validator

SORT_KEYS = ("updated", "created", "title", "favorite")
SORT_ORDERS = ("asc", "desc")


class ViewCriteria(BaseModel):
    """
    Parameters:
        search: Free text, case-insensitive substring match
        tags: Comma-separated tag filter; a resource matches when any of its
            tags contains any term
        favorites_only: Keep only favorites
        sort_by / sort_order: Notes only; bookmarks keep server order
    """

    search: str = Field(default="", description="Free-text search")
    tags: str = Field(default="", description="Comma-separated tag filter")
    favorites_only: bool = Field(default=False)
    sort_by: str = Field(default="updated", description=f"One of {SORT_KEYS}")
    sort_order: str = Field(default="desc", description="asc or desc")

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v not in SORT_KEYS:
            raise ValueError(f"Invalid sort_by '{v}'. Must be one of: {SORT_KEYS}")
        return v

    @field_validator("sort_order")
    @classmethod
    def validate_sort_order(cls, v: str) -> str:
        lowered = v.lower()
        if lowered not in SORT_ORDERS:
            raise ValueError(f"Invalid sort_order '{v}'. Must be one of: {SORT_ORDERS}")
        return lowered

    @property
    def tag_terms(self) -> List[str]:
        """Lower-cased, trimmed filter terms with empties dropped."""
        terms = (term.strip().lower() for term in self.tags.split(","))
        return [term for term in terms if term]

    @property
    def search_term(self) -> str:
        return self.search.lower()
