"""Capability interface the replica routes depend on."""

from typing import Protocol, runtime_checkable

from qbert.domains.deployments.models import DeploymentRef


@runtime_checkable
class ReplicaStore(Protocol):
    """Reads and writes the desired replica count of a Deployment.

    Implementations raise a :class:`~qbert.utils.errors.ClusterError`
    subclass for every failure.
    """

    def fetch_replicas(self, ref: DeploymentRef, timeout: float | None = None) -> int:
        """Return the current desired replica count."""
        ...

    def apply_replicas(
        self, ref: DeploymentRef, replicas: int, timeout: float | None = None
    ) -> int:
        """Set the desired replica count and return the value the cluster accepted."""
        ...
