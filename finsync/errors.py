# FinSync Errors
# Exception hierarchy shared by storage, remote and sync layers

from __future__ import annotations


class FinSyncError(Exception):
    """Base class for all FinSync errors."""


class ConfigError(FinSyncError):
    """Configuration could not be loaded or validated."""


class AuthenticationError(FinSyncError):
    """No bearer token is available for the remote API."""


class ConnectivityError(FinSyncError):
    """No usable network path to the server."""


class RemoteError(FinSyncError):
    """Base class for failures talking to the remote API."""


class RemoteRejectedError(RemoteError):
    """The server answered with a non-success response."""

    def __init__(self, method: str, path: str, status_code: int, body: str = ""):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        message = f"{method} {path} failed: {status_code}"
        if body:
            message = f"{message} - {body[:200]}"
        super().__init__(message)


class TransportError(RemoteError):
    """The request never produced a response (timeout, DNS, refused connection)."""


class RemoteProtocolError(RemoteError):
    """The server answered, but the body is not what the protocol expects."""


class MissingServerIdError(FinSyncError):
    """An UPDATE or DELETE was requested for a record the server never acknowledged."""

    def __init__(self, entity: str, local_id: int | None, action: str):
        self.entity = entity
        self.local_id = local_id
        self.action = action
        super().__init__(f"Cannot {action} {entity} {local_id}: server id is missing")


class ParentNotSyncedError(FinSyncError):
    """A child record references a parent that has no server id yet."""

    def __init__(self, child: str, child_id: int | None, parent: str, parent_id: int | None):
        self.child = child
        self.child_id = child_id
        self.parent = parent
        self.parent_id = parent_id
        super().__init__(f"Parent {parent} {parent_id} of {child} {child_id} is not synced yet")


class MissingParentError(FinSyncError):
    """A pulled record references a parent server id unknown to the local store."""

    def __init__(self, child: str, server_id: str, parent: str, parent_server_id: str | None):
        self.child = child
        self.server_id = server_id
        self.parent = parent
        self.parent_server_id = parent_server_id
        super().__init__(f"{child} {server_id} references unknown {parent} {parent_server_id}")
