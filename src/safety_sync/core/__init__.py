"""Core business logic modules for the safety sync application.

This package contains the sync layer organized by concern:
- store: Local persistence and owned application state
- remote: Remote store clients
- sync: Snapshot codec, merge engine, reconciliation and scheduling
"""

__all__: list[str] = []
