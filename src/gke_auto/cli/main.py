"""Main CLI entry point for gke-auto."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape

from gke_auto import __version__
from gke_auto.core.exceptions import GkeAutoError

if TYPE_CHECKING:
    from gke_auto.adapters.gcp_adapter import GCPAdapter
    from gke_auto.core.config import GkeAutoConfig
    from gke_auto.privilege.gate import PrivilegeGate

# stdout is reserved for credential documents.
console = Console(stderr=True)

EXIT_FAILURE = 1


class GkeAutoContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str | None = None, verbose: bool = False):
        """Initialize context with config path.

        Args:
            config_path: Path to configuration file (optional)
            verbose: Force debug logging
        """
        self.config_path = config_path
        self.verbose = verbose
        self._config: GkeAutoConfig | None = None
        self._gcp_adapter: GCPAdapter | None = None
        self._privilege_gate: PrivilegeGate | None = None

    @property
    def config(self) -> GkeAutoConfig:
        """Get or load config lazily."""
        if self._config is None:
            from gke_auto.core.config import GkeAutoConfig

            self._config = GkeAutoConfig.load(self.config_path)
        return self._config

    @property
    def gcp_adapter(self) -> GCPAdapter:
        """Get or create GCP adapter lazily."""
        if self._gcp_adapter is None:
            from gke_auto.adapters.gcp_adapter import GCPAdapter

            self._gcp_adapter = GCPAdapter(
                container_api_endpoint=self.config.gcp.container_api_endpoint,
                timeout=self.config.gcp.http_timeout_seconds,
            )
        return self._gcp_adapter

    @property
    def token_source(self) -> GCPAdapter:
        return self.gcp_adapter

    @property
    def cluster_provider(self) -> GCPAdapter:
        return self.gcp_adapter

    @property
    def privilege_gate(self) -> PrivilegeGate:
        """Get or create privilege gate lazily."""
        if self._privilege_gate is None:
            from gke_auto.privilege.cooldown import CooldownStore
            from gke_auto.privilege.gate import PrivilegeGate

            self._privilege_gate = PrivilegeGate(
                cooldown_store=CooldownStore(self.config.resolved_scratch_dir()),
                default_timeout_seconds=self.config.privilege.default_timeout_seconds,
            )
        return self._privilege_gate

    def setup_logging(self) -> None:
        from gke_auto.utils.logging import setup_logging

        logging_config = self.config.logging
        setup_logging(
            level="DEBUG" if self.verbose else logging_config.level,
            format=logging_config.format,
            output=logging_config.output,
        )


def program_path(argv0: str | None = None) -> str:
    """Command the kubeconfig exec hook should run to reach this program."""
    argv0 = argv0 if argv0 is not None else sys.argv[0]
    if os.sep in argv0 or (os.altsep and os.altsep in argv0):
        return str(Path(argv0).expanduser().absolute())
    return shutil.which(argv0) or argv0


def fail(ctx: click.Context, error: GkeAutoError) -> None:
    """Report a fatal error on stderr and exit non-zero."""
    from gke_auto.utils.logging import get_logger, log_error

    console.print(f"[red]Error: {escape(str(error))}[/red]", highlight=False)
    log_error(get_logger(__name__), error)
    ctx.exit(EXIT_FAILURE)


@click.command()
@click.version_option(version=__version__)
@click.option("--project", default="", help="Name of the project")
@click.option("--location", default="", help="Location of the cluster")
@click.option("--cluster", default="", help="Name of the cluster")
@click.option("--get", "get_", is_flag=True, help="Print auth information")
@click.option("--clear", is_flag=True, help="Clear auth for this cluster")
@click.option(
    "--verbose", is_flag=True, help="Print debugging information about the plugin execution"
)
@click.option(
    "--skip-privilege-check",
    is_flag=True,
    help="Skip checking for privilege status. Should only be used in non-interactive environments.",
)
@click.option(
    "--configure-docker",
    is_flag=True,
    help="Register gke-auto as the Docker credential helper for Google registries",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to configuration file (default: ~/.config/gke-auto/config.yaml)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    project: str,
    location: str,
    cluster: str,
    get_: bool,
    clear: bool,
    verbose: bool,
    skip_privilege_check: bool,
    configure_docker: bool,
    config_path: str | None,
) -> None:
    """Configure kubectl for a GKE cluster and serve its access tokens.

    Without a mode flag the cluster's kubeconfig entries are installed and
    the context is switched to it; kubectl then calls back with --get.
    """
    from gke_auto.core.config import InvocationConfig
    from gke_auto.core.engine import CredentialEngine
    from gke_auto.utils.logging import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO")

    try:
        invocation = InvocationConfig.from_flags(
            project=project,
            location=location,
            cluster=cluster,
            get=get_,
            clear=clear,
            configure_docker=configure_docker,
            verbose=verbose,
            skip_privilege_check=skip_privilege_check,
            program=program_path(),
        )

        if ctx.obj is None:
            ctx.obj = GkeAutoContext(config_path=config_path, verbose=verbose)
        gke_ctx = ctx.obj
        gke_ctx.setup_logging()

        engine = CredentialEngine(
            invocation=invocation,
            config=gke_ctx.config,
            token_source=gke_ctx.token_source,
            cluster_provider=gke_ctx.cluster_provider,
            gate=gke_ctx.privilege_gate,
        )
        engine.run()
    except GkeAutoError as e:
        fail(ctx, e)


@click.command()
@click.argument("action")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to configuration file",
)
@click.pass_context
def docker_helper(ctx: click.Context, action: str, config_path: str | None) -> None:
    """Docker credential helper for Google container registries.

    ACTION is one of get, list, store or erase.
    """
    from gke_auto.credentials.docker_helper import DockerCredentialHelper
    from gke_auto.utils.logging import setup_logging

    setup_logging()

    try:
        if ctx.obj is None:
            ctx.obj = GkeAutoContext(config_path=config_path)
        gke_ctx = ctx.obj
        gke_ctx.setup_logging()

        docker = gke_ctx.config.docker
        helper = DockerCredentialHelper(
            token_source=gke_ctx.token_source,
            scopes=gke_ctx.config.gcp.docker_scopes,
            registries=docker.registries,
            max_server_url_bytes=docker.max_server_url_bytes,
        )
        helper.handle(action, stdin=click.get_binary_stream("stdin"))
    except GkeAutoError as e:
        fail(ctx, e)


def main() -> None:
    """Dispatch on the program name: Docker runs us as docker-credential-*."""
    from gke_auto.credentials.docker_helper import is_helper_invocation

    if is_helper_invocation(sys.argv[0]):
        docker_helper(prog_name=Path(sys.argv[0]).name)
    else:
        cli(prog_name="gke-auto")


if __name__ == "__main__":
    main()
