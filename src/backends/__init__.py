"""Provider connectors behind one uniform interface.

Importing this package registers the bundled connectors:

- ``test-repo``: in-memory repository with every optional capability
- ``gitlab``: GitLab REST API v4
"""

from .backend import Backend, get_backend_class, register_backend, registered_backends, resolve_backend
from .gitlab import GitLabBackend
from .implementation import Capability, Implementation
from .in_memory import InMemoryBackend
from .models import (
    AssetProxy,
    DeployPreview,
    DisplayURL,
    Entry,
    EntryList,
    ImplementationEntry,
    MediaFile,
    PersistOptions,
    UnpublishedEntry,
    User,
    WorkflowStatus,
)

register_backend(InMemoryBackend.name, InMemoryBackend)
register_backend(GitLabBackend.name, GitLabBackend)

__all__ = [
    "Backend",
    "Capability",
    "Implementation",
    "GitLabBackend",
    "InMemoryBackend",
    "get_backend_class",
    "register_backend",
    "registered_backends",
    "resolve_backend",
    "AssetProxy",
    "DeployPreview",
    "DisplayURL",
    "Entry",
    "EntryList",
    "ImplementationEntry",
    "MediaFile",
    "PersistOptions",
    "UnpublishedEntry",
    "User",
    "WorkflowStatus",
]
