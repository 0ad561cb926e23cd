"""DMDB readiness probe (``dmPython``)."""

from __future__ import annotations

from typing import Any

from hostdb.exceptions import DriverNotInstalledError
from hostdb.model.connection_string import host_and_port
from hostdb.model.resources import CaseInsensitiveDict
from hostdb.probes import SqlProbeHealthCheck

DMDB_PORT = 5236
# Registration timeout for the DMDB probes, in seconds.
DEFAULT_TIMEOUT = 3.0


class DmdbHealthCheck(SqlProbeHealthCheck):
    engine = "DMDB"
    probe_query = "SELECT 1;"

    def connect(self, parts: CaseInsensitiveDict) -> Any:
        try:
            import dmPython  # noqa: PLC0415
        except ImportError as exc:
            raise DriverNotInstalledError("dmPython", "pip install 'hostdb[dmdb]'") from exc

        # Accepts Host/Port keys or a single Server=host:port value.
        host, port = host_and_port(parts, DMDB_PORT)
        return dmPython.connect(
            user=parts.get("Username") or parts.get("User Id"),
            password=parts.get("Password"),
            server=host,
            port=port,
        )
