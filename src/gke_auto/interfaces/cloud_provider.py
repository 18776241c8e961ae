"""Token source and cluster lookup interfaces."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from gke_auto.core.models import ClusterIdentity
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor


class TokenSource(ABC):
    """Supplies bearer tokens from the ambient cloud identity.

    Implementations hide provider-specific details (google-auth exceptions,
    credential discovery) behind this interface so tests can substitute a
    fixed token.
    """

    @abstractmethod
    def get_token(self, scopes: Sequence[str]) -> AccessToken:
        """Return a fresh access token for the given scopes.

        Args:
            scopes: OAuth scopes to request

        Returns:
            AccessToken with bearer string and expiry

        Raises:
            ReauthenticationRequiredError: If the user must log in again
            TokenSourceError: If the token cannot be obtained
        """


class ClusterProvider(ABC):
    """Looks up cluster connection metadata."""

    @abstractmethod
    def get_cluster(self, identity: ClusterIdentity, token: AccessToken) -> ClusterDescriptor:
        """Fetch endpoint, CA certificate and labels for a cluster.

        Args:
            identity: Cluster to look up
            token: Bearer token authorizing the lookup

        Returns:
            ClusterDescriptor for the cluster

        Raises:
            ClusterAccessDeniedError: If the caller may not read the cluster
            ClusterNotFoundError: If the cluster does not exist
            ClusterFetchError: On any other non-success response
        """
