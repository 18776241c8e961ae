"""Data types for the token source and cluster lookup interfaces."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class AccessToken:
    """OAuth2 bearer token."""

    access_token: str
    expiry: datetime


@dataclass(frozen=True)
class ClusterDescriptor:
    """Connection metadata for a GKE cluster."""

    endpoint: str
    ca_certificate_base64: str
    labels: dict[str, str] = field(default_factory=dict)
