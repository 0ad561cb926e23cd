"""OpenGauss server and database resources."""

from __future__ import annotations

from hostdb.servers import DatabaseResource, DatabaseServerResource


class OpenGaussServerResource(DatabaseServerResource):
    """An OpenGauss container.

    Connection string::

        Host={host};Port={port};Username={user};Password={password}
    """

    DEFAULT_USER_NAME = "gaussdb"
    DEFAULT_DATABASE_NAME = "postgres"
    PG_WIRE_COMPATIBLE = True


class OpenGaussDatabaseResource(DatabaseResource[OpenGaussServerResource]):
    """A database on an OpenGauss server; appends ``;Database={name}``."""
