"""pgAdmin and pgweb sidecars for PostgreSQL wire-compatible servers."""

from hostdb.pgtools.pgadmin import PgAdminBuilder, PgAdminContainerResource, with_pgadmin
from hostdb.pgtools.pgweb import PgWebBuilder, PgWebContainerResource, with_pgweb

__all__ = [
    "PgAdminBuilder",
    "PgAdminContainerResource",
    "PgWebBuilder",
    "PgWebContainerResource",
    "with_pgadmin",
    "with_pgweb",
]
