"""Core data models for gke-auto."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

EXEC_CREDENTIAL_API_VERSION = "client.authentication.k8s.io/v1"
KEY_SEPARATOR = "_"


class Mode(str, Enum):
    """What a single invocation does."""

    INSTALL = "install"
    GET = "get"
    CLEAR = "clear"
    CONFIGURE_DOCKER = "configure-docker"


class InteractiveMode(str, Enum):
    """Values of the exec plugin ``interactiveMode`` field."""

    NEVER = "Never"
    ALWAYS = "Always"


class ClusterIdentity(BaseModel):
    """A GKE cluster, addressed by project, location and name."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(..., description="GCP project ID")
    location: str = Field(..., description="Region or zone of the cluster")
    name: str = Field(..., description="Cluster name")

    @field_validator("project", "location", "name")
    @classmethod
    def _check_component(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        if KEY_SEPARATOR in value:
            raise ValueError(f"must not contain {KEY_SEPARATOR!r}")
        return value

    @property
    def key(self) -> str:
        """Kubeconfig entry name shared by the user, cluster and context."""
        return KEY_SEPARATOR.join(("gke", self.project, self.location, self.name))

    @property
    def display_name(self) -> str:
        return f"{self.project}/{self.location}/{self.name}"


class ExecHookSpec(BaseModel):
    """How the kubeconfig auth entry re-invokes this program."""

    model_config = ConfigDict(frozen=True)

    command: str
    args: tuple[str, ...]
    interactive_mode: InteractiveMode = InteractiveMode.NEVER
    install_hint: str = ""

    def to_kubeconfig(self) -> dict:
        """Render the ``user.exec`` block of a kubeconfig entry."""
        return {
            "exec": {
                "apiVersion": EXEC_CREDENTIAL_API_VERSION,
                "command": self.command,
                "args": list(self.args),
                "installHint": self.install_hint,
                "interactiveMode": self.interactive_mode.value,
                "provideClusterInfo": False,
            }
        }


class ExecCredentialStatus(BaseModel):
    """Status block of an ExecCredential."""

    model_config = ConfigDict(populate_by_name=True)

    expiration_timestamp: datetime = Field(..., alias="expirationTimestamp")
    token: str

    @field_serializer("expiration_timestamp")
    def _rfc3339(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ExecCredential(BaseModel):
    """ExecCredential document returned to kubectl."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(EXEC_CREDENTIAL_API_VERSION, alias="apiVersion")
    kind: str = "ExecCredential"
    status: ExecCredentialStatus
