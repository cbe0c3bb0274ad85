"""Kubernetes client wrapper used by the qbert server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from qbert.config import AuthMode, QbertConfig
from qbert.utils.errors import AuthenticationError

logger = logging.getLogger(__name__)

IN_CLUSTER_TOKEN_PATH = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")


class K8sClient:
    """Thin wrapper around the Kubernetes API clients.

    Owns one ``ApiClient`` built from the configured credentials and exposes
    the handful of calls the server needs. Every call accepts an optional
    ``timeout`` in seconds which is passed through as ``_request_timeout``.
    """

    def __init__(self, config_obj: QbertConfig) -> None:
        self._config = config_obj
        self._api_client: client.ApiClient | None = None
        self._core_v1: client.CoreV1Api | None = None
        self._apps_v1: client.AppsV1Api | None = None

    @property
    def is_connected(self) -> bool:
        """Whether credentials have been loaded and API clients built."""
        return self._api_client is not None

    @property
    def core_v1(self) -> client.CoreV1Api:
        """Get the CoreV1 API client.

        Raises:
            RuntimeError: If the client is not connected.
        """
        if self._core_v1 is None:
            raise RuntimeError("K8s client not connected. Call connect() first.")
        return self._core_v1

    @property
    def apps_v1(self) -> client.AppsV1Api:
        """Get the AppsV1 API client.

        Raises:
            RuntimeError: If the client is not connected.
        """
        if self._apps_v1 is None:
            raise RuntimeError("K8s client not connected. Call connect() first.")
        return self._apps_v1

    def connect(self) -> None:
        """Load credentials and build the API clients.

        Raises:
            AuthenticationError: If no usable credentials are found.
        """
        mode = self._config.auth_mode
        try:
            if mode == AuthMode.TOKEN:
                api_client = self._token_client()
            elif mode == AuthMode.KUBECONFIG:
                api_client = self._kubeconfig_client()
            elif IN_CLUSTER_TOKEN_PATH.exists():
                api_client = self._in_cluster_client()
            else:
                api_client = self._kubeconfig_client()
        except (ConfigException, OSError) as e:
            raise AuthenticationError(f"Failed to load Kubernetes credentials: {e}") from e

        self._api_client = api_client
        self._core_v1 = client.CoreV1Api(api_client)
        self._apps_v1 = client.AppsV1Api(api_client)
        logger.info(f"Connected to Kubernetes API at {api_client.configuration.host}")

    def disconnect(self) -> None:
        """Release the underlying connection pool."""
        if self._api_client is not None:
            self._api_client.close()
        self._api_client = None
        self._core_v1 = None
        self._apps_v1 = None
        logger.info("Disconnected from Kubernetes API")

    def _token_client(self) -> client.ApiClient:
        configuration = client.Configuration()
        configuration.host = self._config.api_url
        configuration.api_key = {"authorization": self._config.api_token or ""}
        configuration.api_key_prefix = {"authorization": "Bearer"}
        configuration.verify_ssl = self._config.verify_ssl
        logger.debug("Using bearer token authentication")
        return client.ApiClient(configuration)

    def _kubeconfig_client(self) -> client.ApiClient:
        logger.debug(
            f"Using kubeconfig {self._config.kubeconfig_path or '(default)'} "
            f"context {self._config.kubeconfig_context or '(current)'}"
        )
        return config.new_client_from_config(
            config_file=self._config.kubeconfig_path,
            context=self._config.kubeconfig_context,
        )

    def _in_cluster_client(self) -> client.ApiClient:
        configuration = client.Configuration()
        config.load_incluster_config(client_configuration=configuration)
        logger.debug("Using in-cluster service account")
        return client.ApiClient(configuration)

    # Namespaces

    def get_namespace(self, name: str, timeout: float | None = None) -> Any:
        """Read a namespace by name."""
        return self.core_v1.read_namespace(name, _request_timeout=timeout)

    # Deployments

    def get_deployment_scale(self, name: str, namespace: str, timeout: float | None = None) -> Any:
        """Read the scale subresource of a Deployment."""
        return self.apps_v1.read_namespaced_deployment_scale(
            name, namespace, _request_timeout=timeout
        )

    def replace_deployment_scale(
        self,
        name: str,
        namespace: str,
        body: client.V1Scale,
        timeout: float | None = None,
    ) -> Any:
        """Replace the scale subresource of a Deployment.

        The API server rejects the update with 409 if ``body.metadata``
        carries a stale ``resource_version``.
        """
        return self.apps_v1.replace_namespaced_deployment_scale(
            name, namespace, body, _request_timeout=timeout
        )
