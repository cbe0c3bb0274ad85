"""Error types raised by the qbert server.

Cluster failures are classified into a closed set of kinds (see
:class:`ErrorKind`). Each kind has its own exception class so callers can
either catch a specific failure or branch on ``error.kind``.
"""

from __future__ import annotations

from enum import Enum


class QbertError(Exception):
    """Base exception for all qbert errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(QbertError):
    """Request input failed validation before reaching the cluster."""

    pass


class AuthenticationError(QbertError):
    """Kubernetes client could not be authenticated."""

    pass


class ErrorKind(str, Enum):
    """Classified outcome of a failed cluster call."""

    NAMESPACE_NOT_FOUND = "NamespaceNotFound"
    DEPLOYMENT_NOT_FOUND = "DeploymentNotFound"
    CONFLICT = "Conflict"
    UNKNOWN = "Unknown"


class ClusterError(QbertError):
    """A cluster call failed; ``kind`` says how."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, namespace: str, name: str, message: str | None = None) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(message or f"{self.kind.value}: deployment '{name}' in '{namespace}'")


class NamespaceNotFoundError(ClusterError):
    """The namespace does not exist."""

    kind = ErrorKind.NAMESPACE_NOT_FOUND

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(namespace, name, f"Namespace '{namespace}' not found")


class DeploymentNotFoundError(ClusterError):
    """The namespace exists but the Deployment does not."""

    kind = ErrorKind.DEPLOYMENT_NOT_FOUND

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(
            namespace, name, f"Deployment '{name}' not found in namespace '{namespace}'"
        )


class ConflictError(ClusterError):
    """Concurrent modifications kept invalidating the update."""

    kind = ErrorKind.CONFLICT


class UnknownClusterError(ClusterError):
    """Any other failure, including transport errors and timeouts."""

    kind = ErrorKind.UNKNOWN
