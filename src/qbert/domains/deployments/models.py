"""Pydantic models for Deployment replica operations."""

from pydantic import BaseModel, ConfigDict, Field, StrictInt

# spec.replicas is an int32 in the Kubernetes API.
MAX_REPLICAS = 2**31 - 1


class DeploymentRef(BaseModel):
    """Reference to a Deployment by namespace and name.

    Only emptiness is checked here; name syntax is left to the cluster.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1, description="Namespace of the Deployment")
    name: str = Field(..., min_length=1, description="Deployment name")

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ScaleRequest(BaseModel):
    """Body of a replica update request."""

    replicas: StrictInt = Field(..., ge=0, le=MAX_REPLICAS, description="Desired replica count")


class ScaleResponse(BaseModel):
    """Replica count returned by reads and successful writes."""

    replicas: int = Field(..., ge=0, description="Desired replica count")
