# Services package init
"""
NoteSync - Services Layer
==========================

What:  The sync layer proper, sitting between the UI and the REST API.
How:   Each service owns one concern and receives its collaborators in its
       constructor; `notesync.main.create_client()` wires them together.

Service Inventory:
    - ApiClient: httpx wrapper, the single place HTTP errors are classified
    - RetryingRequestExecutor: tenacity backoff for rate-limited calls
    - SessionStorage (abstract): durable key/value area for the credential
    - Notifier (abstract): user-facing success/error messages
    - AuthSession: credential owner, login/register/logout/restore
    - CoalescingRefreshScheduler: debounced, single-flight refresh cycles
    - ResourceStore: notes / bookmarks collections with write-then-refetch
    - ViewProjector: pure filter and sort over a collection
"""
