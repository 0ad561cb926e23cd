#!/usr/bin/env python3
"""hostdb: example application host.

Declares one server of every engine:

  1. OpenGauss with a data volume and a database, browsable from pgAdmin
  2. DMDB with custom user and DBA passwords on host port 5236
  3. KingbaseES with a database and a pgweb bookmark
  4. MongoDB as a single-node replica set

Usage:
  hostdb manifest examples.apphost:builder
  hostdb run-args examples.apphost:builder
  hostdb up examples.apphost:builder --wait opengauss
  python examples/apphost.py
"""

from __future__ import annotations

import json

from hostdb import (
    DistributedApplicationBuilder,
    add_dmdb,
    add_kingbasees,
    add_mongo_replica_set,
    add_mongodb,
    add_opengauss,
)
from hostdb.manifest import build_manifest


def create_builder() -> DistributedApplicationBuilder:
    builder = DistributedApplicationBuilder("apphost")

    opengauss = add_opengauss(builder, "opengauss").with_data_volume().with_pgadmin()
    opengauss.add_database("mydb")

    password = builder.add_parameter("user-password", value="Test@1234", secret=True)
    dba_password = builder.add_parameter("dba-password", value="SYSDBA_abc123", secret=True)
    dmdb = (
        add_dmdb(builder, "dmdb-custom")
        .with_password(password)
        .with_dba_password(dba_password)
        .with_host_port(5236)
    )
    dmdb.add_database("testdb")

    kingbase = add_kingbasees(builder, "kingbase").with_pgweb()
    kingbase.add_database("orders")

    mongo = add_mongodb(builder, "mongo").with_replica_set()
    add_mongo_replica_set(builder, "mongo-rs", mongo.add_database("catalog").resource)
    return builder


builder = create_builder()


if __name__ == "__main__":
    print(json.dumps(build_manifest(builder), indent=2))
