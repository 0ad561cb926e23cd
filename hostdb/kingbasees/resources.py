"""KingbaseES server and database resources.

The container runs in PostgreSQL compatibility mode (``DB_MODE=pg``), so
connection strings, probes, pgAdmin and pgweb work as for OpenGauss.
"""

from __future__ import annotations

from hostdb.servers import DatabaseResource, DatabaseServerResource


class KingbaseESServerResource(DatabaseServerResource):
    DEFAULT_USER_NAME = "system"
    DEFAULT_DATABASE_NAME = "test"
    PG_WIRE_COMPATIBLE = True


class KingbaseESDatabaseResource(DatabaseResource[KingbaseESServerResource]):
    pass
