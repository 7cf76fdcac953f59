"""
Database package initialization.

The package follows a modular structure:
- connection: MongoDB client lifecycle and index setup
- documents: ObjectId and document conversion helpers
- session_store: Server-side session persistence
"""

__all__ = []
