"""Container image coordinates for KingbaseES."""

REGISTRY = "docker.io"
IMAGE = "apecloud/kingbase"
TAG = "v008r006c009b0014-unit"
