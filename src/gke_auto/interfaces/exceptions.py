"""Exceptions for interface implementations."""

from gke_auto.core.exceptions import FailureKind, GkeAutoError


class InterfaceError(GkeAutoError):
    """Base exception for all interface-related errors."""

    kind = FailureKind.UPSTREAM


class CloudProviderError(InterfaceError):
    """Exception for cloud provider operations."""


class TokenSourceError(CloudProviderError):
    """Exception for access token acquisition."""


class ReauthenticationRequiredError(TokenSourceError):
    """Ambient credentials are missing or must be refreshed by the user."""


class ClusterFetchError(CloudProviderError):
    """Cluster lookup returned a non-success status.

    Attributes:
        status_code: HTTP status returned by the API
        body: Response body, kept for diagnosis
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        """Initialize cluster fetch error.

        Args:
            message: Error message
            status_code: HTTP status code (None if no response was received)
            body: Response body
        """
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ClusterAccessDeniedError(ClusterFetchError):
    """Caller is not allowed to read the cluster."""


class ClusterNotFoundError(ClusterFetchError):
    """Cluster does not exist."""
