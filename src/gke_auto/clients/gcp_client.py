"""Google Cloud client for access tokens and GKE cluster lookups."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import google.auth
import google.auth.exceptions
import google.auth.transport.requests
import requests

from gke_auto.core.exceptions import GCPAuthError, GCPError
from gke_auto.utils.logging import get_logger

logger = get_logger(__name__)


class GCPClient:
    """Google Cloud client using Application Default Credentials."""

    def __init__(
        self,
        container_api_endpoint: str = "https://container.googleapis.com/v1",
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize GCP client.

        Args:
            container_api_endpoint: Base URL of the GKE API
            timeout: HTTP timeout in seconds (None keeps the transport default)
            session: Existing requests session (optional)
        """
        self.container_api_endpoint = container_api_endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.debug("gcp_client_initialized", endpoint=self.container_api_endpoint)

    def fetch_access_token(self, scopes: Sequence[str]) -> tuple[str, datetime | None]:
        """Mint an access token from the ambient Google identity.

        Args:
            scopes: OAuth scopes to request

        Returns:
            Tuple of (access token, expiry); expiry is naive UTC as returned by google-auth

        Raises:
            GCPAuthError: If no credentials are found or they cannot be refreshed
            GCPError: If the token endpoint cannot be reached
        """
        try:
            credentials, _ = google.auth.default(scopes=list(scopes))
            credentials.refresh(google.auth.transport.requests.Request(session=self.session))
        except google.auth.exceptions.DefaultCredentialsError as e:
            logger.error("default_credentials_not_found", error=str(e))
            raise GCPAuthError(f"google.auth.default: {e}") from e
        except google.auth.exceptions.RefreshError as e:
            logger.error("token_refresh_failed", error=str(e))
            raise GCPAuthError(f"refreshing credentials: {e}") from e
        except google.auth.exceptions.TransportError as e:
            logger.error("token_transport_failed", error=str(e))
            raise GCPError(f"requesting token: {e}") from e

        if not credentials.token:
            raise GCPAuthError("credentials returned an empty access token")

        logger.debug("access_token_fetched", expiry=str(credentials.expiry))
        return credentials.token, credentials.expiry

    def cluster_url(self, project: str, location: str, name: str) -> str:
        return (
            f"{self.container_api_endpoint}/projects/{project}"
            f"/locations/{location}/clusters/{name}"
        )

    def get_cluster(self, project: str, location: str, name: str, access_token: str) -> dict[str, Any]:
        """Get a GKE cluster resource.

        Args:
            project: GCP project ID
            location: Region or zone
            name: Cluster name
            access_token: Bearer token

        Returns:
            Cluster resource as returned by the GKE API

        Raises:
            GCPError: On transport failures, non-200 responses or undecodable bodies
        """
        url = self.cluster_url(project, location, name)
        logger.debug("getting_cluster", url=url)

        try:
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("get_cluster_request_failed", url=url, error=str(e))
            raise GCPError(f"GET {url}: {e}") from e

        if response.status_code != 200:
            logger.error("get_cluster_failed", url=url, status_code=response.status_code)
            raise GCPError(
                f"GET {url}: {response.status_code} {response.reason} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GCPError(f"decoding cluster response: {e}", status_code=200) from e
