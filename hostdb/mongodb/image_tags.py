"""Container image coordinates for MongoDB."""

REGISTRY = "docker.io"
IMAGE = "library/mongo"
TAG = "8.0"
