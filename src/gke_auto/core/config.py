"""Configuration management for gke-auto."""

import os
import tempfile
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gke_auto.core.exceptions import ConfigurationError, UsageError
from gke_auto.core.models import ClusterIdentity, Mode

CONFIG_ENV_VAR = "GKE_AUTO_CONFIG"
DEFAULT_CONFIG_PATH = "~/.config/gke-auto/config.yaml"

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
USERINFO_EMAIL_SCOPE = "https://www.googleapis.com/auth/userinfo.email"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    output: Literal["stderr"] = "stderr"  # stdout carries credential documents


class GCPConfig(BaseModel):
    """Google Cloud access configuration."""

    container_api_endpoint: str = "https://container.googleapis.com/v1"
    scopes: list[str] = Field(default_factory=lambda: [CLOUD_PLATFORM_SCOPE])
    docker_scopes: list[str] = Field(
        default_factory=lambda: [CLOUD_PLATFORM_SCOPE, USERINFO_EMAIL_SCOPE]
    )
    http_timeout_seconds: float | None = None  # None keeps the transport default


class PrivilegeConfig(BaseModel):
    """Privileged cluster gate configuration."""

    default_timeout_seconds: int = 300


class KubeconfigConfig(BaseModel):
    """Kubeconfig update configuration."""

    path: str | None = None
    lock_timeout_seconds: float = 30.0
    preserve_foreign_current_context: bool = False
    install_hint: str = "pip install gke-auto"


class DockerConfig(BaseModel):
    """Docker credential-helper configuration."""

    helper_name: str = "gke-auto"
    registries: list[str] = Field(
        default_factory=lambda: [
            "gcr.io",
            "us.gcr.io",
            "eu.gcr.io",
            "asia.gcr.io",
            "marketplace.gcr.io",
            "us-docker.pkg.dev",
            "europe-docker.pkg.dev",
            "asia-docker.pkg.dev",
        ]
    )
    config_path: str = "~/.docker/config.json"
    bin_dir: str | None = None  # defaults to the directory of the running program
    max_server_url_bytes: int = 4096


class GkeAutoConfig(BaseModel):
    """Main gke-auto configuration."""

    scratch_dir: str | None = None  # cooldown records and lock files; defaults to the temp dir
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    gcp: GCPConfig = Field(default_factory=GCPConfig)
    privilege: PrivilegeConfig = Field(default_factory=PrivilegeConfig)
    kubeconfig: KubeconfigConfig = Field(default_factory=KubeconfigConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "GkeAutoConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            GkeAutoConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration: {config_path} is not a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(cls, path: str | Path | None = None) -> "GkeAutoConfig":
        """Load configuration, falling back to defaults.

        An explicit path (argument or ``$GKE_AUTO_CONFIG``) must exist; the
        default location is optional.
        """
        explicit = path or os.environ.get(CONFIG_ENV_VAR)
        if explicit:
            return cls.from_file(explicit)

        default_path = Path(DEFAULT_CONFIG_PATH).expanduser()
        if default_path.exists():
            return cls.from_file(default_path)
        return cls()

    def resolved_scratch_dir(self) -> Path:
        if self.scratch_dir:
            return Path(self.scratch_dir).expanduser()
        return Path(tempfile.gettempdir())


class InvocationConfig(BaseModel):
    """Immutable description of one invocation, built once from the CLI flags."""

    model_config = ConfigDict(frozen=True)

    mode: Mode
    identity: ClusterIdentity | None = None
    verbose: bool = False
    skip_privilege_check: bool = False
    program: str = "gke-auto"

    @classmethod
    def from_flags(
        cls,
        *,
        project: str | None,
        location: str | None,
        cluster: str | None,
        get: bool = False,
        clear: bool = False,
        configure_docker: bool = False,
        verbose: bool = False,
        skip_privilege_check: bool = False,
        program: str = "gke-auto",
    ) -> "InvocationConfig":
        """Validate flag combinations and build the invocation.

        Raises:
            UsageError: If more than one mode flag is set or the cluster
                identity is incomplete or malformed
        """
        selected = [
            flag
            for flag, enabled in (
                ("--get", get),
                ("--clear", clear),
                ("--configure-docker", configure_docker),
            )
            if enabled
        ]
        if len(selected) > 1:
            raise UsageError(f"cannot pass both {selected[0]} and {selected[1]}")

        if configure_docker:
            return cls(mode=Mode.CONFIGURE_DOCKER, verbose=verbose, program=program)

        mode = Mode.GET if get else Mode.CLEAR if clear else Mode.INSTALL
        if not (project and location and cluster):
            raise UsageError("must pass --project and --location and --cluster")

        try:
            identity = ClusterIdentity(project=project, location=location, name=cluster)
        except ValidationError as e:
            fields = ", ".join(
                f"{err['loc'][0]}: {err['msg']}" for err in e.errors() if err.get("loc")
            )
            raise UsageError(f"invalid cluster identity ({fields})") from e

        return cls(
            mode=mode,
            identity=identity,
            verbose=verbose,
            skip_privilege_check=skip_privilege_check,
            program=program,
        )

    def require_identity(self) -> ClusterIdentity:
        if self.identity is None:
            raise UsageError("must pass --project and --location and --cluster")
        return self.identity

    def hook_args(self) -> tuple[str, ...]:
        """Arguments the kubeconfig exec hook passes back to this program."""
        identity = self.require_identity()
        args = [
            "--get",
            f"--project={identity.project}",
            f"--location={identity.location}",
            f"--cluster={identity.name}",
        ]
        if self.verbose:
            args.append("--verbose")
        if self.skip_privilege_check:
            args.append("--skip-privilege-check")
        return tuple(args)
