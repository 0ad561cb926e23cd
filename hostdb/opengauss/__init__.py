"""OpenGauss hosting: server container, databases and readiness probe."""

from hostdb.opengauss.builder import (
    OpenGaussDatabaseBuilder,
    OpenGaussServerBuilder,
    add_opengauss,
)
from hostdb.opengauss.health import OpenGaussHealthCheck
from hostdb.opengauss.resources import OpenGaussDatabaseResource, OpenGaussServerResource

__all__ = [
    "add_opengauss",
    "OpenGaussServerBuilder",
    "OpenGaussDatabaseBuilder",
    "OpenGaussServerResource",
    "OpenGaussDatabaseResource",
    "OpenGaussHealthCheck",
]
