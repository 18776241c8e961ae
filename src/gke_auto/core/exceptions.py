"""Custom exceptions for gke-auto."""

from enum import Enum


class FailureKind(str, Enum):
    """Failure categories surfaced by the top-level handler."""

    USAGE = "usage"
    UPSTREAM = "upstream"
    LOCAL_STATE = "local-state"
    DECLINED = "declined"
    BRIDGE = "docker-helper"


class GkeAutoError(Exception):
    """Base exception for all gke-auto errors."""

    kind: FailureKind = FailureKind.UPSTREAM


class UsageError(GkeAutoError):
    """Invalid flag combination or missing cluster identity."""

    kind = FailureKind.USAGE


class ConfigurationError(GkeAutoError):
    """Tool configuration file could not be loaded."""

    kind = FailureKind.LOCAL_STATE


class GCPError(GkeAutoError):
    """Google Cloud API or credential operation failed.

    Attributes:
        status_code: HTTP status of a failed API call, if any
        body: Response body of a failed API call
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GCPAuthError(GCPError):
    """Ambient Google credentials are missing, expired or revoked."""


class AccessDeclinedError(GkeAutoError):
    """User declined access to a privileged cluster."""

    kind = FailureKind.DECLINED


class PrivilegeConfigurationError(GkeAutoError):
    """Privilege labels on the cluster are malformed."""

    kind = FailureKind.LOCAL_STATE


class CooldownStateError(GkeAutoError):
    """Cooldown record exists but cannot be read or parsed."""

    kind = FailureKind.LOCAL_STATE


class CACertificateError(GkeAutoError):
    """Cluster CA certificate is not valid base64."""

    kind = FailureKind.LOCAL_STATE


class KubeconfigError(GkeAutoError):
    """Kubeconfig could not be loaded or written."""

    kind = FailureKind.LOCAL_STATE


class KubeconfigLockError(KubeconfigError):
    """Timed out waiting for the kubeconfig lock."""


class DockerConfigError(GkeAutoError):
    """Docker client configuration could not be updated."""

    kind = FailureKind.LOCAL_STATE


class DockerHelperError(GkeAutoError):
    """Docker credential-helper request was rejected."""

    kind = FailureKind.BRIDGE
