"""GCP adapter implementing the TokenSource and ClusterProvider interfaces."""

from collections.abc import Sequence
from datetime import datetime, timezone

from gke_auto.clients.gcp_client import GCPClient
from gke_auto.core.exceptions import GCPAuthError, GCPError
from gke_auto.core.models import ClusterIdentity
from gke_auto.interfaces.cloud_provider import ClusterProvider, TokenSource
from gke_auto.interfaces.cloud_types import AccessToken, ClusterDescriptor
from gke_auto.interfaces.exceptions import (
    ClusterAccessDeniedError,
    ClusterFetchError,
    ClusterNotFoundError,
    ReauthenticationRequiredError,
    TokenSourceError,
)
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)


class GCPAdapter(TokenSource, ClusterProvider):
    """Adapter wrapping GCPClient behind the token source and cluster interfaces.

    This adapter hides google-auth and requests details (credential discovery,
    naive expiry datetimes, HTTP status codes) from the rest of gke-auto.
    """

    def __init__(self, client: GCPClient | None = None, **client_kwargs):
        """Initialize GCP adapter.

        Args:
            client: Existing GCPClient (optional)
            **client_kwargs: Arguments for a new GCPClient when none is given
        """
        self.client = client or GCPClient(**client_kwargs)

    def get_token(self, scopes: Sequence[str]) -> AccessToken:
        """Return a fresh access token for the given scopes.

        Raises:
            ReauthenticationRequiredError: If ambient credentials are missing or revoked
            TokenSourceError: If the token cannot be obtained
        """
        try:
            token, expiry = self.client.fetch_access_token(scopes)
        except GCPAuthError as e:
            raise ReauthenticationRequiredError(
                f"{e} (run `gcloud auth application-default login`)"
            ) from e
        except GCPError as e:
            raise TokenSourceError(f"Failed to get access token: {e}") from e

        return AccessToken(access_token=token, expiry=_as_utc(expiry))

    def get_cluster(self, identity: ClusterIdentity, token: AccessToken) -> ClusterDescriptor:
        """Fetch endpoint, CA certificate and labels for a cluster.

        Raises:
            ClusterAccessDeniedError: On HTTP 401/403
            ClusterNotFoundError: On HTTP 404
            ClusterFetchError: On any other failure
        """
        try:
            cluster = self.client.get_cluster(
                identity.project, identity.location, identity.name, token.access_token
            )
        except GCPError as e:
            raise _fetch_error(identity, e) from e

        master_auth = cluster.get("masterAuth") or {}
        descriptor = ClusterDescriptor(
            endpoint=cluster.get("endpoint", ""),
            ca_certificate_base64=master_auth.get("clusterCaCertificate", ""),
            labels=dict(cluster.get("resourceLabels") or {}),
        )
        if not descriptor.endpoint:
            raise ClusterFetchError(f"cluster {identity.display_name} has no endpoint")

        logger.debug("cluster_retrieved", cluster=identity.display_name)
        return descriptor


def _fetch_error(identity: ClusterIdentity, error: GCPError) -> ClusterFetchError:
    status = error.status_code
    if status in (401, 403):
        cls: type[ClusterFetchError] = ClusterAccessDeniedError
        reason = "access denied to"
    elif status == 404:
        cls = ClusterNotFoundError
        reason = "not found:"
    else:
        cls = ClusterFetchError
        reason = "failed to get"
    return cls(f"{reason} cluster {identity.display_name}: {error}", status_code=status, body=error.body)


def _as_utc(expiry: datetime | None) -> datetime:
    # google-auth reports naive UTC; a missing expiry means "use now" so kubectl refreshes.
    if expiry is None:
        return datetime.now(timezone.utc)
    if expiry.tzinfo is None:
        return expiry.replace(tzinfo=timezone.utc)
    return expiry.astimezone(timezone.utc)
