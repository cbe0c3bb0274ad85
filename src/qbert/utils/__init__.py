"""Utility helpers for the qbert server."""

from qbert.utils.errors import (
    AuthenticationError,
    ClusterError,
    ConflictError,
    DeploymentNotFoundError,
    ErrorKind,
    NamespaceNotFoundError,
    QbertError,
    UnknownClusterError,
    ValidationError,
)
from qbert.utils.responses import error_response

__all__ = [
    # Errors
    "QbertError",
    "ValidationError",
    "AuthenticationError",
    "ErrorKind",
    "ClusterError",
    "NamespaceNotFoundError",
    "DeploymentNotFoundError",
    "ConflictError",
    "UnknownClusterError",
    # Responses
    "error_response",
]
