"""
Filesystem-backed document storage.

Components:
- DocumentStore: Keyed documents in directories of one workspace
- WorkspaceLifecycle: Soft-delete, reset and purge of whole workspaces
- content: Text, binary and property-map file codec
"""

from . import content
from .document_store import DocumentStore
from .workspace import WorkspaceLifecycle

__all__ = ["DocumentStore", "WorkspaceLifecycle", "content"]
