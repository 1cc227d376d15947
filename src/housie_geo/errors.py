"""Exception types shared by the geo coordination services.

Each error subclasses the builtin the API layer already branches on, so a
route can catch ``ValueError`` or ``PermissionError`` without importing this
module.
"""

from __future__ import annotations


class LocationUnavailable(RuntimeError):
    """The device position could not be obtained."""


class LocationPermissionDenied(LocationUnavailable):
    """The user or platform refused access to the device location."""


class LocationTimeout(LocationUnavailable):
    """A position request did not complete within its timeout budget."""


class StoreError(ConnectionError):
    """A call to the backing store failed."""


class StoreNotConfigured(StoreError):
    """Supabase credentials are missing, so no store client can be created."""


class ClusterDataError(ValueError):
    """Cluster data does not satisfy the optimizer preconditions."""


class ClusterNotFoundError(ClusterDataError):
    """The requested cluster does not exist."""


class ClusterAuthorizationError(PermissionError):
    """The caller is neither the cluster organizer nor a bidding provider."""


class SessionNotFoundError(LookupError):
    """No proximity session with this id belongs to the caller."""
