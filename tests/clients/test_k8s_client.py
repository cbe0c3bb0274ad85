"""Tests for K8sClient."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes.config.config_exception import ConfigException

from qbert.clients.base import K8sClient
from qbert.config import AuthMode, QbertConfig
from qbert.utils.errors import AuthenticationError


class TestK8sClientConnect:
    """Test credential loading."""

    def test_kubeconfig_mode(self) -> None:
        config = QbertConfig(
            auth_mode=AuthMode.KUBECONFIG,
            kubeconfig_path="/tmp/kubeconfig",
            kubeconfig_context="kind-qbert",
        )
        k8s = K8sClient(config)

        with patch("qbert.clients.base.config.new_client_from_config") as new_client:
            k8s.connect()

        new_client.assert_called_once_with(
            config_file="/tmp/kubeconfig", context="kind-qbert"
        )
        assert k8s.is_connected

    def test_auto_mode_prefers_in_cluster(self) -> None:
        k8s = K8sClient(QbertConfig(auth_mode=AuthMode.AUTO))

        with (
            patch("qbert.clients.base.IN_CLUSTER_TOKEN_PATH") as token_path,
            patch("qbert.clients.base.config.load_incluster_config") as load_incluster,
            patch("qbert.clients.base.config.new_client_from_config") as new_client,
        ):
            token_path.exists.return_value = True
            k8s.connect()

        load_incluster.assert_called_once()
        new_client.assert_not_called()
        assert k8s.is_connected

    def test_auto_mode_falls_back_to_kubeconfig(self) -> None:
        k8s = K8sClient(QbertConfig(auth_mode=AuthMode.AUTO))

        with (
            patch("qbert.clients.base.IN_CLUSTER_TOKEN_PATH") as token_path,
            patch("qbert.clients.base.config.new_client_from_config") as new_client,
        ):
            token_path.exists.return_value = False
            k8s.connect()

        new_client.assert_called_once()

    def test_token_mode(self) -> None:
        k8s = K8sClient(
            QbertConfig(
                auth_mode=AuthMode.TOKEN,
                api_url="https://api.example:6443",
                api_token="sha256~abc",
                verify_ssl=False,
            )
        )

        k8s.connect()

        configuration = k8s.core_v1.api_client.configuration
        assert configuration.host == "https://api.example:6443"
        assert configuration.verify_ssl is False
        assert configuration.get_api_key_with_prefix("authorization") == "Bearer sha256~abc"
        k8s.disconnect()

    def test_config_errors_become_authentication_errors(self) -> None:
        k8s = K8sClient(QbertConfig(auth_mode=AuthMode.KUBECONFIG))

        with patch(
            "qbert.clients.base.config.new_client_from_config",
            side_effect=ConfigException("Invalid kube-config file. No configuration found."),
        ):
            with pytest.raises(AuthenticationError):
                k8s.connect()

        assert not k8s.is_connected

    def test_disconnect(self) -> None:
        k8s = K8sClient(QbertConfig(auth_mode=AuthMode.KUBECONFIG))
        api_client = MagicMock()
        with patch("qbert.clients.base.config.new_client_from_config", return_value=api_client):
            k8s.connect()

        k8s.disconnect()

        api_client.close.assert_called_once()
        assert not k8s.is_connected
        with pytest.raises(RuntimeError):
            _ = k8s.apps_v1


class TestK8sClientCalls:
    """Test that calls are forwarded with the request timeout."""

    @pytest.fixture
    def k8s(self) -> K8sClient:
        k8s = K8sClient(QbertConfig())
        k8s._core_v1 = MagicMock()
        k8s._apps_v1 = MagicMock()
        return k8s

    def test_get_namespace(self, k8s: K8sClient) -> None:
        k8s.get_namespace("integration-test", timeout=2.0)

        k8s.core_v1.read_namespace.assert_called_once_with(
            "integration-test", _request_timeout=2.0
        )

    def test_get_deployment_scale(self, k8s: K8sClient) -> None:
        k8s.get_deployment_scale("nginx", "integration-test", timeout=1.5)

        k8s.apps_v1.read_namespaced_deployment_scale.assert_called_once_with(
            "nginx", "integration-test", _request_timeout=1.5
        )

    def test_replace_deployment_scale(self, k8s: K8sClient) -> None:
        body = MagicMock()

        k8s.replace_deployment_scale("nginx", "integration-test", body)

        k8s.apps_v1.replace_namespaced_deployment_scale.assert_called_once_with(
            "nginx", "integration-test", body, _request_timeout=None
        )
