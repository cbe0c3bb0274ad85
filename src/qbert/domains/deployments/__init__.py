"""Deployments domain - read and scale Deployment replica counts."""

from qbert.domains.deployments.client import DeploymentClient, classify_api_error, retry_on_conflict
from qbert.domains.deployments.models import DeploymentRef, ScaleRequest, ScaleResponse
from qbert.domains.deployments.store import ReplicaStore

__all__ = [
    "DeploymentClient",
    "DeploymentRef",
    "ReplicaStore",
    "ScaleRequest",
    "ScaleResponse",
    "classify_api_error",
    "retry_on_conflict",
]
