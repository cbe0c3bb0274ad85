"""Kubernetes client wrappers."""

from qbert.clients.base import K8sClient

__all__ = ["K8sClient"]
