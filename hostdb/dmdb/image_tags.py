"""Container image coordinates for DM8 (DMDB)."""

REGISTRY = "docker.io"
IMAGE = "cnxc/dm8"
TAG = "20250423-kylin"
