"""Deployment replica operations against the Kubernetes API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from qbert.domains.deployments.models import MAX_REPLICAS, DeploymentRef
from qbert.utils.errors import (
    ClusterError,
    ConflictError,
    DeploymentNotFoundError,
    NamespaceNotFoundError,
    UnknownClusterError,
    ValidationError,
)

if TYPE_CHECKING:
    from qbert.clients.base import K8sClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Resource = Literal["namespace", "deployment"]

DEFAULT_CONFLICT_RETRIES = 3
DEFAULT_CONFLICT_BACKOFF = 0.1


class Deadline:
    """Point in time after which no further cluster call may start."""

    def __init__(self, timeout: float | None, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = None if timeout is None else clock() + timeout

    def remaining(self) -> float | None:
        """Seconds left, or None when there is no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


def classify_api_error(error: Exception, ref: DeploymentRef, resource: Resource) -> ClusterError:
    """Map a failure of a cluster call to a classified error.

    A 404 is attributed to whichever resource was being read, so callers
    must look up the namespace before the Deployment. A 409 only means a
    conflict for Deployment writes. Everything else, including transport
    errors and timeouts, is ``Unknown``.

    Args:
        error: Exception raised by the Kubernetes client.
        ref: Deployment the call was made for.
        resource: Which resource the failing call addressed.
    """
    if isinstance(error, ClusterError):
        return error

    if isinstance(error, ApiException):
        if error.status == 404:
            if resource == "namespace":
                return NamespaceNotFoundError(ref.namespace, ref.name)
            return DeploymentNotFoundError(ref.namespace, ref.name)
        if error.status == 409 and resource == "deployment":
            return ConflictError(
                ref.namespace, ref.name, f"Conflicting update to deployment '{ref}'"
            )
        return UnknownClusterError(
            ref.namespace,
            ref.name,
            f"Kubernetes API returned {error.status} {error.reason} for {resource} '{ref}'",
        )

    return UnknownClusterError(
        ref.namespace,
        ref.name,
        f"{type(error).__name__} while accessing {resource} '{ref}': {error}",
    )


def retry_on_conflict(
    operation: Callable[[], T],
    attempts: int = DEFAULT_CONFLICT_RETRIES,
    backoff: float = DEFAULT_CONFLICT_BACKOFF,
    deadline: Deadline | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a read-modify-write operation, retrying when it hits a conflict.

    The backoff doubles after each failed attempt. Only :class:`ConflictError`
    is retried; other errors propagate immediately.

    Args:
        operation: Callable performing one full read-modify-write cycle.
        attempts: Total number of attempts, at least one.
        backoff: Delay in seconds before the second attempt.
        deadline: Retries never wait past this deadline.
        sleep: Sleep function, replaceable in tests.

    Raises:
        ConflictError: If every attempt conflicted.
        UnknownClusterError: If the deadline left no room for another attempt.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    delay = backoff
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConflictError as e:
            if attempt == attempts:
                logger.warning(f"Giving up after {attempts} conflicting updates: {e}")
                raise

            remaining = deadline.remaining() if deadline is not None else None
            if remaining is not None and remaining <= delay:
                raise UnknownClusterError(
                    e.namespace,
                    e.name,
                    f"Deadline exceeded retrying update to '{e.namespace}/{e.name}'",
                ) from e

            logger.debug(f"Conflict on attempt {attempt}/{attempts}, retrying in {delay:.3f}s")
            sleep(delay)
            delay *= 2

    raise AssertionError("unreachable")


class DeploymentClient:
    """Client for Deployment replica operations.

    Implements :class:`~qbert.domains.deployments.store.ReplicaStore` on top of
    the Deployment scale subresource.
    """

    def __init__(
        self,
        k8s: K8sClient,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
        conflict_backoff: float = DEFAULT_CONFLICT_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._k8s = k8s
        self._conflict_retries = conflict_retries
        self._conflict_backoff = conflict_backoff
        self._sleep = sleep

    def fetch_replicas(self, ref: DeploymentRef, timeout: float | None = None) -> int:
        """Get the desired replica count of a Deployment.

        Args:
            ref: Deployment to read.
            timeout: Seconds allowed for all cluster calls together.

        Raises:
            NamespaceNotFoundError: If the namespace does not exist.
            DeploymentNotFoundError: If the Deployment does not exist.
            UnknownClusterError: For any other failure.
        """
        deadline = Deadline(timeout)
        self._ensure_namespace(ref, deadline)
        scale = self._call(ref, "deployment", deadline, self._k8s.get_deployment_scale)
        return _spec_replicas(scale)

    def apply_replicas(
        self, ref: DeploymentRef, replicas: int, timeout: float | None = None
    ) -> int:
        """Set the desired replica count of a Deployment.

        Performs a read-modify-write of the scale subresource guarded by its
        resourceVersion and retries on conflicts. Returns once the API server
        has accepted the new count; it does not wait for the rollout.

        Args:
            ref: Deployment to scale.
            replicas: Desired replica count, zero allowed.
            timeout: Seconds allowed for all cluster calls together.

        Returns:
            The replica count stored by the cluster.

        Raises:
            ValidationError: If replicas is negative or exceeds MAX_REPLICAS.
            NamespaceNotFoundError: If the namespace does not exist.
            DeploymentNotFoundError: If the Deployment does not exist.
            ConflictError: If concurrent writers won every attempt.
            UnknownClusterError: For any other failure.
        """
        if not 0 <= replicas <= MAX_REPLICAS:
            raise ValidationError(f"replicas must be in [0, {MAX_REPLICAS}], got {replicas}")

        deadline = Deadline(timeout)
        self._ensure_namespace(ref, deadline)

        applied = retry_on_conflict(
            lambda: self._write_replicas(ref, replicas, deadline),
            attempts=self._conflict_retries,
            backoff=self._conflict_backoff,
            deadline=deadline,
            sleep=self._sleep,
        )
        logger.info(f"Scaled deployment {ref} to {applied} replicas")
        return applied

    def _write_replicas(self, ref: DeploymentRef, replicas: int, deadline: Deadline) -> int:
        scale = self._call(ref, "deployment", deadline, self._k8s.get_deployment_scale)
        current = _spec_replicas(scale)
        if current == replicas:
            logger.debug(f"Deployment {ref} already has {replicas} replicas")
            return current

        body = client.V1Scale(
            api_version="autoscaling/v1",
            kind="Scale",
            metadata=client.V1ObjectMeta(
                name=ref.name,
                namespace=ref.namespace,
                resource_version=scale.metadata.resource_version,
            ),
            spec=client.V1ScaleSpec(replicas=replicas),
        )
        updated = self._call(
            ref, "deployment", deadline, self._k8s.replace_deployment_scale, body
        )
        return _spec_replicas(updated)

    def _ensure_namespace(self, ref: DeploymentRef, deadline: Deadline) -> None:
        self._call(ref, "namespace", deadline, self._k8s.get_namespace)

    def _call(
        self,
        ref: DeploymentRef,
        resource: Resource,
        deadline: Deadline,
        func: Callable[..., Any],
        *extra: Any,
    ) -> Any:
        """Invoke one cluster call with the remaining time, classifying failures."""
        if deadline.expired:
            raise UnknownClusterError(
                ref.namespace, ref.name, f"Deadline exceeded before reading {resource} '{ref}'"
            )

        args = (ref.namespace,) if resource == "namespace" else (ref.name, ref.namespace)
        try:
            return func(*args, *extra, timeout=deadline.remaining())
        except Exception as e:
            raise classify_api_error(e, ref, resource) from e


def _spec_replicas(scale: Any) -> int:
    # The API omits spec.replicas when it is zero.
    return (scale.spec.replicas if scale.spec else None) or 0
