"""Connection-wide names shared by authentication and encryption."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

InitHook = Callable[[str, bool], None]


@dataclass
class AuthEncryptContext:
    """Host and user names known to the authentication and encryption layers."""

    remote_host_name: Optional[str] = None
    local_host_name: Optional[str] = None
    user_name_requested: Optional[str] = None
    connected_count: int = 0
    init_hooks: List[InitHook] = field(default_factory=list)

    def init(self, local: str, remote: str, name: str, server: bool) -> None:
        """Record the host names, run the layer initialisers and forget the user."""
        self.remote_host_name = remote
        self.local_host_name = local
        for hook in self.init_hooks:
            hook(name, server)
        self.user_name_requested = None

    def set_user(self, name: Optional[str]) -> None:
        """Remember the user name to request, or clear it with None."""
        self.user_name_requested = name

    def connect(self, cnt: int) -> None:
        """Note the connection count reported by the caller."""
        self.connected_count = cnt


def printd(data: bytes) -> str:
    """Format up to 16 bytes as space-prefixed two-digit hex for debug output."""
    return "".join(f" {byte:02x}" for byte in bytes(data)[:16])