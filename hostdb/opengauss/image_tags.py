"""Container image coordinates for OpenGauss."""

REGISTRY = "docker.io"
IMAGE = "opengauss/opengauss"
TAG = "6.0.0"
