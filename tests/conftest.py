"""Shared fixtures: an in-memory Kubernetes cluster and a wired test server."""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator
from typing import Any

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException
from starlette.testclient import TestClient

from qbert.config import QbertConfig
from qbert.domains.deployments.client import DeploymentClient
from qbert.server import QbertServer


class FakeK8sClient:
    """In-memory stand-in for K8sClient.

    Stores Deployment replica counts with a resourceVersion and rejects
    stale writes with 409, the way the API server does.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.namespaces: set[str] = set()
        self.deployments: dict[tuple[str, str], tuple[int, int]] = {}
        self.timeouts: list[float | None] = []
        self.writes = 0
        self.read_hook: Callable[[str, str], None] | None = None

    @property
    def is_connected(self) -> bool:
        return True

    def add_deployment(self, namespace: str, name: str, replicas: int) -> None:
        self.namespaces.add(namespace)
        self.deployments[(namespace, name)] = (replicas, 1)

    def replicas_of(self, namespace: str, name: str) -> int:
        return self.deployments[(namespace, name)][0]

    def bump(self, namespace: str, name: str, replicas: int) -> None:
        """Simulate a write by another client."""
        with self._lock:
            _, version = self.deployments[(namespace, name)]
            self.deployments[(namespace, name)] = (replicas, version + 1)

    def get_namespace(self, name: str, timeout: float | None = None) -> Any:
        self.timeouts.append(timeout)
        if name not in self.namespaces:
            raise ApiException(status=404, reason="Not Found")
        return client.V1Namespace(metadata=client.V1ObjectMeta(name=name))

    def get_deployment_scale(self, name: str, namespace: str, timeout: float | None = None) -> Any:
        self.timeouts.append(timeout)
        with self._lock:
            if (namespace, name) not in self.deployments:
                raise ApiException(status=404, reason="Not Found")
            replicas, version = self.deployments[(namespace, name)]
        if self.read_hook is not None:
            self.read_hook(namespace, name)
        return _scale(namespace, name, replicas, version)

    def replace_deployment_scale(
        self,
        name: str,
        namespace: str,
        body: client.V1Scale,
        timeout: float | None = None,
    ) -> Any:
        self.timeouts.append(timeout)
        with self._lock:
            if (namespace, name) not in self.deployments:
                raise ApiException(status=404, reason="Not Found")
            _, version = self.deployments[(namespace, name)]
            if body.metadata.resource_version != str(version):
                raise ApiException(status=409, reason="Conflict")
            replicas = body.spec.replicas
            self.deployments[(namespace, name)] = (replicas, version + 1)
            self.writes += 1
            return _scale(namespace, name, replicas, version + 1)


def _scale(namespace: str, name: str, replicas: int, version: int) -> client.V1Scale:
    # Like the API server, leave spec.replicas unset when it is zero.
    return client.V1Scale(
        metadata=client.V1ObjectMeta(
            name=name, namespace=namespace, resource_version=str(version)
        ),
        spec=client.V1ScaleSpec(replicas=replicas or None),
    )


@pytest.fixture
def fake_k8s() -> FakeK8sClient:
    """Cluster with deployment 'nginx' (2 replicas) in 'integration-test'."""
    fake = FakeK8sClient()
    fake.add_deployment("integration-test", "nginx", 2)
    return fake


@pytest.fixture
def sleeps() -> list[float]:
    """Backoff delays requested by the deployment client."""
    return []


@pytest.fixture
def deployment_client(fake_k8s: FakeK8sClient, sleeps: list[float]) -> DeploymentClient:
    """DeploymentClient over the fake cluster that records instead of sleeping."""
    return DeploymentClient(
        fake_k8s,  # type: ignore[arg-type]
        conflict_retries=3,
        conflict_backoff=0.05,
        sleep=sleeps.append,
    )


@pytest.fixture
def test_config() -> QbertConfig:
    """Configuration with a known request timeout."""
    return QbertConfig(request_timeout=5.0)


@pytest.fixture
def server(test_config: QbertConfig, deployment_client: DeploymentClient) -> QbertServer:
    """Server using the fake-cluster deployment client as its replica store."""
    return QbertServer(test_config, store=deployment_client)


@pytest.fixture
def http_client(server: QbertServer) -> Generator[TestClient, Any, None]:
    """HTTP client for the server's Starlette app."""
    with TestClient(server.create_app()) as test_client:
        yield test_client
