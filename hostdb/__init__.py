"""hostdb: database containers as resources of an application graph.

Builder extensions register OpenGauss, DMDB, KingbaseES and MongoDB servers
(plus databases, replica sets and pgAdmin/pgweb sidecars) with a
``DistributedApplicationBuilder``.  Each extension configures the container,
formats a connection-string expression and registers a readiness probe.

Layers (bottom to top):
    1. Model       resources, annotations, expressions, health checks, events
    2. Engines     opengauss, dmdb, kingbasees, mongodb, pgtools
    3. Publish     JSON manifest, docker CLI runtime
    4. CLI         manifest, run-args, up, down, health
"""

__version__ = "0.1.0"
__license__ = "MIT"

from hostdb.dmdb import add_dmdb
from hostdb.kingbasees import add_kingbasees
from hostdb.model import DistributedApplication, DistributedApplicationBuilder
from hostdb.mongodb import add_mongo_replica_set, add_mongodb
from hostdb.opengauss import add_opengauss

__all__ = [
    "__version__",
    "DistributedApplicationBuilder",
    "DistributedApplication",
    "add_opengauss",
    "add_dmdb",
    "add_kingbasees",
    "add_mongodb",
    "add_mongo_replica_set",
]
