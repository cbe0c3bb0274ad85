"""Starlette application for the qbert replica-control API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from qbert.clients.base import K8sClient
from qbert.config import QbertConfig, get_config
from qbert.domains.deployments.client import DeploymentClient
from qbert.domains.deployments.routes import register_routes
from qbert.domains.deployments.store import ReplicaStore
from qbert.middleware import RecoveryMiddleware, RequestLoggingMiddleware

logger = logging.getLogger(__name__)


class QbertServer:
    """qbert server holding configuration, the K8s client and the replica store."""

    def __init__(
        self,
        config: QbertConfig | None = None,
        store: ReplicaStore | None = None,
    ) -> None:
        self._config = config or get_config()
        self._k8s_client: K8sClient | None = None
        self._store: ReplicaStore | None = store
        self._store_injected = store is not None
        self._app: Starlette | None = None

    @property
    def config(self) -> QbertConfig:
        """Get server configuration."""
        return self._config

    @property
    def k8s(self) -> K8sClient:
        """Get the Kubernetes client.

        Raises:
            RuntimeError: If server is not running.
        """
        if self._k8s_client is None:
            raise RuntimeError("Server not running. K8s client not available.")
        return self._k8s_client

    @property
    def store(self) -> ReplicaStore:
        """Get the replica store used by the routes.

        Raises:
            RuntimeError: If server is not running and no store was injected.
        """
        if self._store is None:
            raise RuntimeError("Server not running. Replica store not available.")
        return self._store

    @property
    def app(self) -> Starlette:
        """Get the Starlette application.

        Raises:
            RuntimeError: If the application has not been created.
        """
        if self._app is None:
            raise RuntimeError("Server not initialized.")
        return self._app

    @property
    def is_ready(self) -> bool:
        """Whether requests can be served against the cluster."""
        if self._store_injected:
            return True
        return self._k8s_client is not None and self._k8s_client.is_connected

    def startup(self) -> None:
        """Connect to Kubernetes and build the replica store.

        An injected store is kept as is. A K8s client that is already
        connected is reused.
        """
        if self._store_injected:
            logger.info("Using injected replica store, skipping Kubernetes connection")
            return

        if self._k8s_client is None or not self._k8s_client.is_connected:
            self._k8s_client = K8sClient(self._config)
            self._k8s_client.connect()

        self._store = DeploymentClient(
            self._k8s_client,
            conflict_retries=self._config.conflict_retries,
            conflict_backoff=self._config.conflict_backoff,
        )

    def shutdown(self) -> None:
        """Disconnect from Kubernetes."""
        if self._k8s_client is not None:
            self._k8s_client.disconnect()
        self._k8s_client = None
        if not self._store_injected:
            self._store = None

    @asynccontextmanager
    async def _lifespan(self, _app: Starlette) -> AsyncIterator[None]:
        """Connect on startup, disconnect on shutdown."""
        logger.info("Starting qbert server...")
        try:
            self.startup()
            logger.info("qbert server started")
            yield
        finally:
            logger.info("Shutting down qbert server...")
            self.shutdown()
            logger.info("qbert server shut down")

    def _health_routes(self) -> list[Route]:
        async def health(_request: Request) -> Response:
            """Liveness probe."""
            return PlainTextResponse("ok")

        async def ready(_request: Request) -> Response:
            """Readiness probe reporting whether the cluster is reachable."""
            ready = self.is_ready
            status = HTTPStatus.OK if ready else HTTPStatus.SERVICE_UNAVAILABLE
            return JSONResponse(
                {
                    "status": "ready" if ready else "not_ready",
                    "connected": ready,
                },
                status_code=status,
            )

        return [
            Route("/health", health, methods=["GET"], name="health"),
            Route("/ready", ready, methods=["GET"], name="ready"),
        ]

    def create_app(self) -> Starlette:
        """Create and configure the Starlette application."""
        routes = self._health_routes() + register_routes(self)
        app = Starlette(
            routes=routes,
            middleware=[
                Middleware(RequestLoggingMiddleware),
                Middleware(RecoveryMiddleware),
            ],
            lifespan=self._lifespan,
        )
        self._app = app
        logger.info(f"Registered {len(routes)} routes")
        return app


# Global server instance
_server: QbertServer | None = None


def get_server() -> QbertServer:
    """Get the global server instance."""
    global _server
    if _server is None:
        _server = QbertServer()
    return _server


def create_server(
    config: QbertConfig | None = None,
    store: ReplicaStore | None = None,
) -> Starlette:
    """Create and return the Starlette application.

    This is the main entry point for creating the server.
    """
    global _server
    _server = QbertServer(config, store)
    return _server.create_app()
