"""MongoDB hosting: server, databases and single-node replica sets."""

from hostdb.mongodb.builder import (
    MongoDBDatabaseBuilder,
    MongoDBServerBuilder,
    add_mongodb,
)
from hostdb.mongodb.health import (
    MongoClientSettings,
    MongoDBHealthCheck,
    MongoReplicaSetHealthCheck,
)
from hostdb.mongodb.replica_set import MongoReplicaSetBuilder, add_mongo_replica_set
from hostdb.mongodb.resources import (
    MongoDBDatabaseResource,
    MongoDBServerResource,
    MongoReplicaSetResource,
)

__all__ = [
    "add_mongodb",
    "add_mongo_replica_set",
    "MongoDBServerBuilder",
    "MongoDBDatabaseBuilder",
    "MongoReplicaSetBuilder",
    "MongoDBServerResource",
    "MongoDBDatabaseResource",
    "MongoReplicaSetResource",
    "MongoClientSettings",
    "MongoDBHealthCheck",
    "MongoReplicaSetHealthCheck",
]
