"""KingbaseES readiness probe."""

from __future__ import annotations

from hostdb.probes import PostgresProbeHealthCheck


class KingbaseESHealthCheck(PostgresProbeHealthCheck):
    engine = "KingbaseES"
    default_port = 54321
