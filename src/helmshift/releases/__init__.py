"""
Release system clients.

Implementations:
    - InMemoryReleaseClient: dictionaries, render hook, failure injection
    - HelmCLI: the helm v3 binary
"""

from helmshift.releases.helm import HelmCLI
from helmshift.releases.in_memory import InMemoryReleaseClient
from helmshift.releases.interface import Release, ReleaseClient, ReleaseStatus

__all__ = [
    "Release",
    "ReleaseClient",
    "ReleaseStatus",
    "InMemoryReleaseClient",
    "HelmCLI",
]
