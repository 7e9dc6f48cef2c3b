"""Build container backends and session handling."""

from ftbfs.container.backend import ContainerBackend, LxdBackend
from ftbfs.container.session import Container, NetworkUnreachableError

__all__ = [
    "Container",
    "ContainerBackend",
    "LxdBackend",
    "NetworkUnreachableError",
]
