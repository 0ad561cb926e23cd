"""``Key=Value;Key=Value;`` connection strings.

Keys are case-insensitive; values may contain ``=``.  ``Server=host:port`` is
split on the last colon so an IPv6 host (optionally bracketed) survives.
"""

from __future__ import annotations

from hostdb.model.resources import CaseInsensitiveDict


def parse_connection_string(value: str) -> CaseInsensitiveDict:
    parts = CaseInsensitiveDict()
    for segment in value.split(";"):
        if not segment.strip():
            continue
        key, sep, val = segment.partition("=")
        if not sep:
            raise ValueError(f"Malformed connection string segment '{segment.strip()}'")
        parts[key.strip()] = val.strip()
    return parts


def format_connection_string(parts: dict[str, object]) -> str:
    return "".join(f"{key}={value};" for key, value in parts.items() if value is not None)


def split_server(server: str, default_port: int) -> tuple[str, int]:
    """``"host:port"`` → ``("host", port)``; ``"host"`` → ``("host", default_port)``."""
    server = server.strip()
    if server.startswith("[") and "]" in server:
        host, _, rest = server[1:].partition("]")
        port = rest.lstrip(":")
        return host, int(port) if port else default_port
    host, sep, port = server.rpartition(":")
    if sep and port.isdigit():
        return host, int(port)
    return server, default_port


def host_and_port(parts: CaseInsensitiveDict, default_port: int) -> tuple[str, int]:
    """Read ``Host``/``Port`` keys, falling back to ``Server``."""
    if "Host" in parts:
        return parts["Host"], int(parts.get("Port") or default_port)
    if "Server" in parts:
        return split_server(parts["Server"], default_port)
    raise ValueError("Connection string has neither 'Host' nor 'Server'")
