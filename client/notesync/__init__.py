"""
NoteSync - Client Synchronization Package
==========================================

What: Client-side data synchronization layer for the notes & bookmarks manager.
Who:  Imported by the UI layer (forms, pages) and by the test suite.

Architecture Note:
    The package is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │      main.py (composition root)     │  ← wiring, lifecycle, logging
    ├─────────────────────────────────────┤
    │   Services (session, stores, views) │  ← state containers, policies
    ├─────────────────────────────────────┤
    │    ApiClient + middleware hooks     │  ← HTTP, error classification
    ├─────────────────────────────────────┤
    │        Schemas (pydantic)           │  ← resources, payloads, results
    └─────────────────────────────────────┘

    Only AuthSession writes the credential and only a ResourceStore writes
    its collection. Everything above reads them or subscribes to changes.
"""

__version__ = "1.0.0"
