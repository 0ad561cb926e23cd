"""OpenGauss readiness probe."""

from __future__ import annotations

from hostdb.probes import PostgresProbeHealthCheck


class OpenGaussHealthCheck(PostgresProbeHealthCheck):
    engine = "OpenGauss"
    default_port = 5432
