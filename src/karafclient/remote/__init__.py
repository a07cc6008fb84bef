"""Transport backends that carry the remote session."""

from karafclient.remote.base import Session, Transport
from karafclient.remote.ssh import ParamikoTransport

__all__ = [
    "Session",
    "Transport",
    "ParamikoTransport",
]
