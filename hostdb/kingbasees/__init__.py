"""KingbaseES hosting: server container, databases, probe, pgAdmin and pgweb."""

from hostdb.kingbasees.builder import (
    KingbaseESDatabaseBuilder,
    KingbaseESServerBuilder,
    add_kingbasees,
)
from hostdb.kingbasees.health import KingbaseESHealthCheck
from hostdb.kingbasees.resources import KingbaseESDatabaseResource, KingbaseESServerResource

__all__ = [
    "add_kingbasees",
    "KingbaseESServerBuilder",
    "KingbaseESDatabaseBuilder",
    "KingbaseESServerResource",
    "KingbaseESDatabaseResource",
    "KingbaseESHealthCheck",
]
