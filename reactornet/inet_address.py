"""IPv4 socket addresses."""

from __future__ import annotations

import socket
from dataclasses import dataclass

_INADDR_NONE = "255.255.255.255"


def _normalize_ip(ip: str) -> str:
    try:
        return socket.inet_ntoa(socket.inet_aton(ip))
    except (OSError, ValueError):
        return _INADDR_NONE


@dataclass(frozen=True)
class InetAddress:
    """An IPv4 address and port.

    An unparsable address becomes 255.255.255.255, as ``inet_addr`` yields.
    """

    port: int = 0
    ip: str = "127.0.0.1"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")
        object.__setattr__(self, "ip", _normalize_ip(self.ip))

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> InetAddress:
        """Build from a ``(host, port)`` tuple as returned by the socket module."""
        host, port = sockaddr[0], sockaddr[1]
        return cls(port, host)

    def to_ip(self) -> str:
        return self.ip

    def to_ip_port(self) -> str:
        return f"{self.ip}:{self.port}"

    def to_port(self) -> int:
        return self.port

    def sockaddr(self) -> tuple[str, int]:
        return (self.ip, self.port)

    def __str__(self) -> str:
        return self.to_ip_port()