"""Interfaces for the external collaborators of gke-auto."""

from gke_auto.interfaces.cloud_provider import ClusterProvider, TokenSource
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor

__all__ = [
    "AccessToken",
    "ClusterDescriptor",
    "ClusterProvider",
    "TokenSource",
]
