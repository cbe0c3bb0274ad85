"""Domain modules exposed by the qbert server."""
