"""DMDB (DM8) hosting: server container, databases and readiness probe."""

from hostdb.dmdb.builder import DmdbDatabaseBuilder, DmdbServerBuilder, add_dmdb
from hostdb.dmdb.health import DmdbHealthCheck
from hostdb.dmdb.resources import DmdbDatabaseResource, DmdbServerResource

__all__ = [
    "add_dmdb",
    "DmdbServerBuilder",
    "DmdbDatabaseBuilder",
    "DmdbServerResource",
    "DmdbDatabaseResource",
    "DmdbHealthCheck",
]
