"""HTTP routes for reading and setting Deployment replica counts."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

import pydantic
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from qbert.domains.deployments.models import DeploymentRef, ScaleRequest, ScaleResponse
from qbert.utils.errors import ClusterError, ErrorKind, ValidationError
from qbert.utils.responses import error_response

if TYPE_CHECKING:
    from qbert.server import QbertServer

logger = logging.getLogger(__name__)

REPLICAS_PATH = "/deployments/{namespace}/{name}/replicas"

STATUS_BY_KIND: dict[ErrorKind, HTTPStatus] = {
    ErrorKind.NAMESPACE_NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.DEPLOYMENT_NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    ErrorKind.UNKNOWN: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def parse_scale_request(body: bytes) -> ScaleRequest:
    """Parse a request body into a ScaleRequest.

    Raises:
        ValidationError: If the body is not JSON or replicas is not a
            non-negative integer.
    """
    try:
        return ScaleRequest.model_validate_json(body)
    except pydantic.ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(map(str, err['loc'])) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid scale request: {errors}") from e


def _deployment_ref(request: Request) -> DeploymentRef:
    return DeploymentRef(
        namespace=request.path_params["namespace"],
        name=request.path_params["name"],
    )


def _cluster_error_response(error: ClusterError, operation: str) -> JSONResponse:
    status = STATUS_BY_KIND.get(error.kind, HTTPStatus.INTERNAL_SERVER_ERROR)
    log = logger.error if status == HTTPStatus.INTERNAL_SERVER_ERROR else logger.info
    log(
        f"{operation} replicas failed for namespace={error.namespace} "
        f"name={error.name} kind={error.kind.value}: {error.message}"
    )
    return error_response(status)


def register_routes(server: QbertServer) -> list[Route]:
    """Create the replica routes bound to the server's replica store."""

    async def get_replicas(request: Request) -> Response:
        """Return the desired replica count of a Deployment."""
        ref = _deployment_ref(request)
        try:
            replicas = await run_in_threadpool(
                server.store.fetch_replicas, ref, server.config.request_timeout
            )
        except ClusterError as e:
            return _cluster_error_response(e, "get")

        return JSONResponse(ScaleResponse(replicas=replicas).model_dump())

    async def set_replicas(request: Request) -> Response:
        """Set the desired replica count of a Deployment.

        The body must be ``{"replicas": N}`` with N a non-negative integer.
        Invalid bodies are rejected before the cluster is contacted.
        """
        ref = _deployment_ref(request)
        try:
            scale_request = parse_scale_request(await request.body())
        except ValidationError as e:
            logger.info(f"Rejected scale request for {ref}: {e.message}")
            return error_response(HTTPStatus.BAD_REQUEST)

        try:
            applied = await run_in_threadpool(
                server.store.apply_replicas,
                ref,
                scale_request.replicas,
                server.config.request_timeout,
            )
        except ValidationError as e:
            logger.info(f"Rejected scale request for {ref}: {e.message}")
            return error_response(HTTPStatus.BAD_REQUEST)
        except ClusterError as e:
            return _cluster_error_response(e, "set")

        return JSONResponse(ScaleResponse(replicas=applied).model_dump())

    return [
        Route(REPLICAS_PATH, get_replicas, methods=["GET"], name="get_replicas"),
        Route(REPLICAS_PATH, set_replicas, methods=["PUT"], name="set_replicas"),
    ]
