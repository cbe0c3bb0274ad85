"""qbert - HTTP API for reading and scaling Kubernetes Deployment replicas."""

__version__ = "0.1.0"
